"""Error taxonomy shared by the store adapter, GitHub client and handlers."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    BAD_ROUTE = "bad_route"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    STORE = "store"
    FILE_STORE = "file_store"
    INTERNAL = "internal"


class MenuManagerError(Exception):
    """Base class for every error the handlers know how to report."""

    kind = ErrorKind.INTERNAL

    def to_json(self) -> dict:
        return {"kind": self.kind.value, "message": str(self)}


class BadRequestError(MenuManagerError):
    """Raised when a request body or path parameter is malformed."""

    kind = ErrorKind.BAD_REQUEST


class NotFoundError(MenuManagerError):
    """Raised when a store item or remote file does not exist."""

    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(MenuManagerError):
    """Raised when the caller has no principal or a GitHub token is rejected."""

    kind = ErrorKind.UNAUTHORIZED


class StoreError(MenuManagerError):
    """Raised when DynamoDB rejects or fails a request."""

    kind = ErrorKind.STORE


class FileStoreError(MenuManagerError):
    """Raised when the GitHub contents API returns an unexpected response."""

    kind = ErrorKind.FILE_STORE

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ConflictError(FileStoreError):
    """Raised when the revision sha supplied on commit is stale."""

    kind = ErrorKind.CONFLICT


class TransientError(FileStoreError):
    """Raised on network failures, timeouts and 5xx responses."""

    kind = ErrorKind.TRANSIENT


def describe(exc: Exception) -> dict:
    """Returns the tagged {kind, message} payload for any exception."""
    if isinstance(exc, MenuManagerError):
        return exc.to_json()
    return {"kind": ErrorKind.INTERNAL.value, "message": str(exc)}
