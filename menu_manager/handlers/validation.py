"""Request validation for the menu and user Lambda handlers."""

from __future__ import annotations

from typing import Optional

from menu_manager.errors import BadRequestError
from menu_manager.handlers.http import error_response, parse_body, path_parameter


def _error_response(message: str) -> dict:
    """Return a 400 API Gateway response tagged as a bad request."""
    return error_response(BadRequestError(message))


def _body_error(event: dict, required_key: str) -> Optional[str]:
    try:
        body = parse_body(event)
    except BadRequestError as exc:
        return str(exc)
    if required_key not in body:
        return f"Missing '{required_key}' in request body"
    return None


def validate_create_menu_request(event: dict) -> dict | None:
    """Validate a POST /menus request.

    Returns ``None`` if the request is valid, or a 400 API Gateway response
    dict if validation fails.
    """
    message = _body_error(event, "menu")
    if message:
        return _error_response(message)
    return None


def validate_update_menu_request(event: dict) -> dict | None:
    """Validate a PUT /menus/{menuid} request.

    The menuid must be non-blank and must not contain '#', which separates
    the record type from the id in the sort key.
    """
    menu_id = path_parameter(event, "menuid")
    if not menu_id.strip():
        return _error_response("Missing or empty menuid path parameter")
    if "#" in menu_id:
        return _error_response("Invalid menuid: '#' is not allowed")

    message = _body_error(event, "menu")
    if message:
        return _error_response(message)
    return None


def validate_profile_request(event: dict) -> dict | None:
    """Validate a POST or PUT /users request (body must carry a profile)."""
    message = _body_error(event, "profile")
    if message:
        return _error_response(message)
    return None
