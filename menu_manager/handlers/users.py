"""Users Lambda handler - the caller's own profile record."""

from __future__ import annotations

import datetime as dt
import logging

from menu_manager.auth import get_principal_id
from menu_manager.config import Settings
from menu_manager.errors import NotFoundError
from menu_manager.handlers.http import (
    error_response,
    json_response,
    parse_body,
    route_key,
    unsupported_route_response,
)
from menu_manager.handlers.validation import validate_profile_request
from menu_manager.models import PROFILE_SORT_KEY, UserProfile, utc_timestamp
from menu_manager.storage import DynamoTable

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

CREATE_USER = "POST /users"
GET_USER = "GET /users"
UPDATE_USER = "PUT /users"
DELETE_USER = "DELETE /users"

ROUTES = (CREATE_USER, GET_USER, UPDATE_USER, DELETE_USER)

_store = None


def _get_store() -> DynamoTable:
    global _store
    if _store is None:
        settings = Settings.from_env()
        _store = DynamoTable(settings.table_name, region_name=settings.region_name)
    return _store


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def handler(event, context, store=None, clock=None) -> dict:
    """
    Entry point for the /users API Gateway resources.
    Same error contract as the menus handler: always 400 on failure.
    """
    route = route_key(event)
    if route not in ROUTES:
        return unsupported_route_response()

    try:
        table = store or _get_store()
        now = utc_timestamp((clock or _utcnow)())
        principal = get_principal_id(event)
        logger.info("%s principal=%s", route, principal)

        if route in (CREATE_USER, UPDATE_USER):
            invalid = validate_profile_request(event)
            if invalid is not None:
                return invalid
            profile = parse_body(event).get("profile")

        if route == CREATE_USER:
            user = UserProfile(owner_id=principal, created_at=now, profile=profile)
            table.put(principal, PROFILE_SORT_KEY, user.attributes())
            return json_response(201, user.to_json())

        if route == UPDATE_USER:
            table.update(principal, PROFILE_SORT_KEY, {"profile": profile, "updatedAt": now})
            return json_response(200, {"userid": principal, "profile": profile})

        if route == GET_USER:
            item = table.get(principal, PROFILE_SORT_KEY)
            if item is None:
                raise NotFoundError("User profile not found")
            return json_response(200, UserProfile.from_item(item).to_json())

        if table.delete(principal, PROFILE_SORT_KEY) is None:
            raise NotFoundError("User profile not found")
        return json_response(200, {"userid": principal, "deleted": True})

    except Exception as exc:
        logger.error("Users handler error on %s: %s", route, exc)
        return error_response(exc)
