"""Caller identity as resolved by the API Gateway authorizer."""

from __future__ import annotations

from menu_manager.errors import UnauthorizedError


def get_principal_id(event: dict) -> str:
    """
    Returns the caller's principal id from the request context.

    Lambda authorizers put it at requestContext.authorizer.principalId;
    Cognito user-pool authorizers expose the user's sub under claims.
    Raises: UnauthorizedError if neither is present.
    """
    context = event.get("requestContext") or {}
    authorizer = context.get("authorizer") or {}

    principal = authorizer.get("principalId")
    if not principal:
        claims = authorizer.get("claims") or {}
        principal = claims.get("sub")

    if not isinstance(principal, str) or not principal.strip():
        raise UnauthorizedError("Request has no authenticated principal")
    return principal
