"""Menus Lambda handler - create, list and update a caller's menus."""

from __future__ import annotations

import datetime as dt
import logging

from menu_manager.auth import get_principal_id
from menu_manager.config import Settings
from menu_manager.errors import NotFoundError
from menu_manager.file_store import GitHubFileStore
from menu_manager.handlers.http import (
    error_response,
    json_response,
    parse_body,
    path_parameter,
    route_key,
    unsupported_route_response,
)
from menu_manager.handlers.validation import (
    validate_create_menu_request,
    validate_update_menu_request,
)
from menu_manager.models import (
    MENU_PREFIX,
    MenuRecord,
    RepoLink,
    menu_id_from_timestamp,
    utc_timestamp,
)
from menu_manager.storage import DynamoTable

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

CREATE_MENU = "POST /menus"
GET_MENUS = "GET /menus"
UPDATE_MENU = "PUT /menus/{menuid}"

_settings = None
_store = None
_file_store = None


def _get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def _get_store() -> DynamoTable:
    global _store
    if _store is None:
        settings = _get_settings()
        _store = DynamoTable(settings.table_name, region_name=settings.region_name)
    return _store


def _get_file_store() -> GitHubFileStore:
    global _file_store
    if _file_store is None:
        _file_store = GitHubFileStore(_get_settings())
    return _file_store


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class MenuHandler:
    """Menu operations for one caller, backed by the table and the GitHub mirror."""

    def __init__(self, store: DynamoTable, file_store: GitHubFileStore, clock=None):
        self.store = store
        self.file_store = file_store
        self._clock = clock or _utcnow

    def create(self, principal: str, body: dict) -> dict:
        """
        Stores a new menu under an id derived from the current time.
        Two creates in the same millisecond share an id; the later one wins.
        """
        created_at = utc_timestamp(self._clock())
        record = MenuRecord(
            owner_id=principal,
            menu_id=menu_id_from_timestamp(created_at),
            created_at=created_at,
            menu=body.get("menu"),
            link=RepoLink.from_json(body),
        )
        self.store.put(principal, record.sort_key, record.attributes())
        logger.info("Created menu %s (mirrored=%s)", record.menu_id, record.link is not None)
        return json_response(201, record.to_json())

    def list(self, principal: str) -> dict:
        items = self.store.query(principal, MENU_PREFIX)
        menus = [MenuRecord.from_item(item).to_json() for item in items]
        return json_response(200, {"menus": menus})

    def update(self, principal: str, menu_id: str, body: dict) -> dict:
        """
        Replaces the menu. Mirrored menus are committed to GitHub first and
        the table is updated afterwards; a table failure at that point leaves
        the two out of step.
        """
        sort_key = MENU_PREFIX + menu_id
        item = self.store.get(principal, sort_key)
        if item is None:
            raise NotFoundError(f"Menu {menu_id} not found")

        record = MenuRecord.from_item(item)
        new_menu = body.get("menu")

        if record.link is not None:
            remote = self.file_store.fetch_file(record.link)
            self.file_store.commit_file(record.link, {"menu": new_menu}, remote.sha)

        self.store.update(
            principal,
            sort_key,
            {"menu": new_menu, "updatedAt": utc_timestamp(self._clock())},
        )
        return json_response(200, {"menuid": menu_id, "menu": new_menu})

    def dispatch(self, route: str, event: dict) -> dict:
        principal = get_principal_id(event)
        logger.info("%s principal=%s", route, principal)

        if route == CREATE_MENU:
            invalid = validate_create_menu_request(event)
            if invalid is not None:
                return invalid
            return self.create(principal, parse_body(event))

        if route == GET_MENUS:
            return self.list(principal)

        invalid = validate_update_menu_request(event)
        if invalid is not None:
            return invalid
        return self.update(principal, path_parameter(event, "menuid"), parse_body(event))


ROUTES = (CREATE_MENU, GET_MENUS, UPDATE_MENU)


def handler(event, context, store=None, file_store=None, clock=None) -> dict:
    """
    Entry point for the /menus API Gateway resources.
    Unknown routes get 400 {"message": "Unsupported route"}; any failure
    while serving a known route gets 400 {"Error": {kind, message}}.
    """
    route = route_key(event)
    if route not in ROUTES:
        return unsupported_route_response()

    try:
        menus = MenuHandler(
            store or _get_store(),
            file_store or _get_file_store(),
            clock=clock,
        )
        return menus.dispatch(route, event)
    except Exception as exc:
        logger.error("Menus handler error on %s: %s", route, exc)
        return error_response(exc)
