"""Unit tests for the Menus Lambda handler."""

import datetime as dt
import itertools
import json
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

from menu_manager.errors import ConflictError, UnauthorizedError
from menu_manager.handlers import menus
from menu_manager.handlers.menus import handler
from menu_manager.models import RemoteFile
from menu_manager.storage import DynamoTable

TABLE_NAME = "test-users"
USER = "user-a"
OTHER_USER = "user-b"
FIXED_NOW = dt.datetime(2024, 5, 17, 9, 30, 15, 123000, tzinfo=dt.timezone.utc)
FIXED_MENU_ID = "2024-05-17T09-30-15-123Z"
LINK = {"owner": "octo", "repo": "menus", "path": "data/menu.json", "token": "token ghp_abc"}


def _api_event(method: str, resource: str, principal=USER, body=None, menuid=None) -> dict:
    event = {
        "httpMethod": method,
        "resource": resource,
        "requestContext": {"authorizer": {"principalId": principal}} if principal else {},
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body) if body is not None else None,
        "pathParameters": {"menuid": menuid} if menuid is not None else None,
    }
    return event


def _fixed_clock():
    return FIXED_NOW


def _ticking_clock():
    ticks = itertools.count()
    return lambda: FIXED_NOW + dt.timedelta(milliseconds=next(ticks))


@pytest.fixture
def dynamodb():
    with mock_aws():
        resource = boto3.resource("dynamodb", region_name="us-east-1")
        resource.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {"AttributeName": "userid", "KeyType": "HASH"},
                {"AttributeName": "sk", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "userid", "AttributeType": "S"},
                {"AttributeName": "sk", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        yield resource


@pytest.fixture
def store(dynamodb):
    return DynamoTable(TABLE_NAME, dynamodb=dynamodb)


@pytest.fixture
def file_store():
    mock = MagicMock()
    mock.fetch_file.return_value = RemoteFile(path="data/menu.json", sha="sha-1", content="{}")
    mock.commit_file.return_value = "sha-2"
    return mock


def _call(event, store, file_store, clock=None):
    response = handler(event, None, store=store, file_store=file_store, clock=clock)
    return response, json.loads(response["body"])


class TestCreateMenu:
    def test_returns_201_with_menuid_and_menu(self, store, file_store):
        event = _api_event("POST", "/menus", body={"menu": {"items": ["soup", "salad"]}})

        response, body = _call(event, store, file_store, clock=_fixed_clock)

        assert response["statusCode"] == 201
        assert response["headers"]["Content-Type"] == "application/json"
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"
        assert body == {"menuid": FIXED_MENU_ID, "menu": {"items": ["soup", "salad"]}}

    def test_menuid_has_no_colons_or_periods(self, store, file_store):
        _, body = _call(_api_event("POST", "/menus", body={"menu": "x"}), store, file_store)

        assert ":" not in body["menuid"]
        assert "." not in body["menuid"]

    def test_writes_item_with_timestamp(self, store, file_store):
        _call(_api_event("POST", "/menus", body={"menu": [1, 2.5]}), store, file_store, clock=_fixed_clock)

        item = store.get(USER, f"MENU#{FIXED_MENU_ID}")
        assert item["createdAt"] == "2024-05-17T09:30:15.123Z"
        assert item["userid"] == USER

    def test_stores_repo_link_without_echoing_token(self, store, file_store):
        event = _api_event("POST", "/menus", body={"menu": {"a": 1}, **LINK})

        _, body = _call(event, store, file_store, clock=_fixed_clock)

        assert "token" not in body
        item = store.get(USER, f"MENU#{FIXED_MENU_ID}")
        assert item["repo"] == "menus"
        assert item["token"] == "token ghp_abc"
        file_store.commit_file.assert_not_called()

    def test_same_timestamp_overwrites_silently(self, store, file_store):
        _call(_api_event("POST", "/menus", body={"menu": "first"}), store, file_store, clock=_fixed_clock)
        _call(_api_event("POST", "/menus", body={"menu": "second"}), store, file_store, clock=_fixed_clock)

        _, body = _call(_api_event("GET", "/menus"), store, file_store)
        assert body == {"menus": [{"menuid": FIXED_MENU_ID, "menu": "second"}]}

    def test_distinct_timestamps_do_not_collide(self, store, file_store):
        clock = _ticking_clock()
        _, first = _call(_api_event("POST", "/menus", body={"menu": 1}), store, file_store, clock=clock)
        _, second = _call(_api_event("POST", "/menus", body={"menu": 2}), store, file_store, clock=clock)

        assert first["menuid"] != second["menuid"]
        _, body = _call(_api_event("GET", "/menus"), store, file_store)
        assert len(body["menus"]) == 2

    def test_missing_menu_returns_400(self, store, file_store):
        response, body = _call(_api_event("POST", "/menus", body={"items": []}), store, file_store)

        assert response["statusCode"] == 400
        assert body["Error"]["kind"] == "bad_request"

    def test_non_json_body_returns_400(self, store, file_store):
        event = _api_event("POST", "/menus")
        event["body"] = "{not json"

        response, body = _call(event, store, file_store)

        assert response["statusCode"] == 400
        assert body["Error"]["kind"] == "bad_request"


class TestListMenus:
    def test_empty_list_for_new_user(self, store, file_store):
        response, body = _call(_api_event("GET", "/menus"), store, file_store)

        assert response["statusCode"] == 200
        assert body == {"menus": []}

    def test_lists_created_menu(self, store, file_store):
        _, created = _call(
            _api_event("POST", "/menus", body={"menu": {"price": 12.5}}), store, file_store
        )

        _, body = _call(_api_event("GET", "/menus"), store, file_store)

        assert body["menus"] == [{"menuid": created["menuid"], "menu": {"price": 12.5}}]

    def test_ignores_non_menu_items(self, store, file_store):
        store.put(USER, "PROFILE", {"profile": {"name": "Ana"}})

        _, body = _call(_api_event("GET", "/menus"), store, file_store)

        assert body == {"menus": []}


class TestUpdateMenu:
    def test_round_trip_create_list_update_list(self, store, file_store):
        _, created = _call(
            _api_event("POST", "/menus", body={"menu": {"items": ["soup", "salad"]}}),
            store,
            file_store,
        )
        menu_id = created["menuid"]

        _, listed = _call(_api_event("GET", "/menus"), store, file_store)
        assert listed["menus"] == [{"menuid": menu_id, "menu": {"items": ["soup", "salad"]}}]

        response, updated = _call(
            _api_event("PUT", "/menus/{menuid}", body={"menu": {"items": ["soup"]}}, menuid=menu_id),
            store,
            file_store,
        )
        assert response["statusCode"] == 200
        assert updated == {"menuid": menu_id, "menu": {"items": ["soup"]}}

        _, listed = _call(_api_event("GET", "/menus"), store, file_store)
        assert listed["menus"] == [{"menuid": menu_id, "menu": {"items": ["soup"]}}]

    def test_unknown_menu_returns_400_not_404(self, store, file_store):
        response, body = _call(
            _api_event("PUT", "/menus/{menuid}", body={"menu": {}}, menuid="nope"),
            store,
            file_store,
        )

        assert response["statusCode"] == 400
        assert body["Error"]["kind"] == "not_found"

    def test_unlinked_menu_skips_github(self, store, file_store):
        store.put(USER, "MENU#m1", {"createdAt": "t0", "menu": "old"})

        response, _ = _call(
            _api_event("PUT", "/menus/{menuid}", body={"menu": "new"}, menuid="m1"),
            store,
            file_store,
        )

        assert response["statusCode"] == 200
        file_store.fetch_file.assert_not_called()
        file_store.commit_file.assert_not_called()

    def test_linked_menu_is_committed_at_fetched_sha(self, store, file_store):
        store.put(USER, "MENU#m1", {"createdAt": "t0", "menu": "old", **LINK})

        response, body = _call(
            _api_event("PUT", "/menus/{menuid}", body={"menu": {"items": ["soup"]}}, menuid="m1"),
            store,
            file_store,
            clock=_fixed_clock,
        )

        assert response["statusCode"] == 200
        assert body == {"menuid": "m1", "menu": {"items": ["soup"]}}
        link = file_store.fetch_file.call_args.args[0]
        assert (link.owner, link.repo, link.path, link.token) == tuple(LINK.values())
        file_store.commit_file.assert_called_once_with(link, {"menu": {"items": ["soup"]}}, "sha-1")

        item = store.get(USER, "MENU#m1")
        assert item["menu"] == {"items": ["soup"]}
        assert item["updatedAt"] == "2024-05-17T09:30:15.123Z"
        assert item["createdAt"] == "t0"

    def test_conflict_leaves_store_untouched(self, store, file_store):
        store.put(USER, "MENU#m1", {"createdAt": "t0", "menu": "old", **LINK})
        file_store.commit_file.side_effect = ConflictError("sha does not match", status_code=409)

        response, body = _call(
            _api_event("PUT", "/menus/{menuid}", body={"menu": "new"}, menuid="m1"),
            store,
            file_store,
        )

        assert response["statusCode"] == 400
        assert body["Error"]["kind"] == "conflict"
        assert store.get(USER, "MENU#m1")["menu"] == "old"

    def test_unauthorized_fetch_returns_400(self, store, file_store):
        store.put(USER, "MENU#m1", {"createdAt": "t0", "menu": "old", **LINK})
        file_store.fetch_file.side_effect = UnauthorizedError("Bad credentials")

        response, body = _call(
            _api_event("PUT", "/menus/{menuid}", body={"menu": "new"}, menuid="m1"),
            store,
            file_store,
        )

        assert response["statusCode"] == 400
        assert body["Error"] == {"kind": "unauthorized", "message": "Bad credentials"}
        file_store.commit_file.assert_not_called()

    def test_menuid_with_hash_is_rejected(self, store, file_store):
        response, body = _call(
            _api_event("PUT", "/menus/{menuid}", body={"menu": "x"}, menuid="a#b"),
            store,
            file_store,
        )

        assert response["statusCode"] == 400
        assert body["Error"]["kind"] == "bad_request"


class TestTenantIsolation:
    def test_other_users_menus_are_invisible(self, store, file_store):
        _call(_api_event("POST", "/menus", principal=OTHER_USER, body={"menu": "b's"}), store, file_store)

        _, body = _call(_api_event("GET", "/menus"), store, file_store)

        assert body == {"menus": []}

    def test_cannot_update_other_users_menu(self, store, file_store):
        _, created = _call(
            _api_event("POST", "/menus", principal=OTHER_USER, body={"menu": "b's", **LINK}),
            store,
            file_store,
        )

        response, body = _call(
            _api_event("PUT", "/menus/{menuid}", body={"menu": "hijacked"}, menuid=created["menuid"]),
            store,
            file_store,
        )

        assert response["statusCode"] == 400
        assert body["Error"]["kind"] == "not_found"
        assert store.get(OTHER_USER, f"MENU#{created['menuid']}")["menu"] == "b's"
        assert store.get(USER, f"MENU#{created['menuid']}") is None
        file_store.commit_file.assert_not_called()


class TestRouting:
    def test_unsupported_route(self, store, file_store):
        response = handler(_api_event("DELETE", "/menus"), None, store=store, file_store=file_store)

        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"message": "Unsupported route"}

    def test_unsupported_route_needs_no_configuration(self, monkeypatch):
        monkeypatch.delenv("USERS_TABLE", raising=False)

        response = handler(_api_event("PATCH", "/menus/{menuid}"), None)

        assert response["body"] == json.dumps({"message": "Unsupported route"})

    def test_missing_principal_returns_400(self, store, file_store):
        response, body = _call(_api_event("GET", "/menus", principal=None), store, file_store)

        assert response["statusCode"] == 400
        assert body["Error"]["kind"] == "unauthorized"

    def test_cognito_claims_are_accepted(self, store, file_store):
        event = _api_event("GET", "/menus", principal=None)
        event["requestContext"] = {"authorizer": {"claims": {"sub": USER}}}

        response, body = _call(event, store, file_store)

        assert response["statusCode"] == 200
        assert body == {"menus": []}

    def test_missing_table_env_returns_400(self, monkeypatch):
        monkeypatch.delenv("USERS_TABLE", raising=False)
        monkeypatch.setattr(menus, "_settings", None)
        monkeypatch.setattr(menus, "_store", None)
        monkeypatch.setattr(menus, "_file_store", None)

        response = handler(_api_event("GET", "/menus"), None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body["Error"]["kind"] == "internal"
        assert "USERS_TABLE" in body["Error"]["message"]
