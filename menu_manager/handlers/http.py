"""API Gateway proxy-integration helpers shared by the resource handlers."""

from __future__ import annotations

import base64
import json
from typing import Any

from menu_manager.errors import BadRequestError, describe

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
}


def json_response(status_code: int, body: Any) -> dict:
    return {
        "statusCode": status_code,
        "headers": dict(DEFAULT_HEADERS),
        "body": json.dumps(body),
    }


def unsupported_route_response() -> dict:
    return json_response(400, {"message": "Unsupported route"})


def error_response(exc: Exception) -> dict:
    """Every failure is reported as a 400 carrying the tagged error."""
    return json_response(400, {"Error": describe(exc)})


def route_key(event: dict) -> str:
    """'<httpMethod> <resource template>', e.g. 'PUT /menus/{menuid}'."""
    return f"{event.get('httpMethod')} {event.get('resource')}"


def raw_body(event: dict) -> str:
    body = event.get("body")
    if body is None or body == "":
        return ""
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return body


def parse_body(event: dict) -> dict:
    """
    Parses the JSON request body. A missing body parses as {}.
    Raises: BadRequestError if the body is not a JSON object.
    """
    try:
        text = raw_body(event)
        if not text:
            return {}
        data = json.loads(text)
    except ValueError as exc:
        raise BadRequestError(f"Request body is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise BadRequestError(f"Expected a JSON object body, got {type(data).__name__}")
    return data


def path_parameter(event: dict, name: str) -> str:
    params = event.get("pathParameters") or {}
    return params.get(name) or ""
