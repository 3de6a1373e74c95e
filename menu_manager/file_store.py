"""GitHub file store - mirrors menus into a JSON file through the contents API."""

from __future__ import annotations

import base64
import json
import logging
from typing import Any
from urllib.parse import quote

import requests

from menu_manager.config import Settings
from menu_manager.errors import (
    ConflictError,
    FileStoreError,
    NotFoundError,
    TransientError,
    UnauthorizedError,
)
from menu_manager.models import RemoteFile, RepoLink

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "application/vnd.github.v3+json"

# GitHub answers 409 for a stale sha on most repos, 422 when the sha is
# missing or malformed, and 412 from some proxies.
_CONFLICT_STATUSES = (409, 412, 422)


def _raise_for_status(response, action: str, link: RepoLink) -> None:
    status = response.status_code
    if 200 <= status < 300:
        return

    where = f"{link.owner}/{link.repo}/{link.path}"
    try:
        detail = response.json().get("message", "")
    except ValueError:
        detail = response.text[:200] if isinstance(response.text, str) else ""
    message = f"GitHub {action} {where} failed ({status}): {detail}"
    logger.error(message)

    if status == 404:
        raise NotFoundError(message)
    if status in (401, 403):
        raise UnauthorizedError(message)
    if status in _CONFLICT_STATUSES:
        raise ConflictError(message, status_code=status)
    if status >= 500:
        raise TransientError(message, status_code=status)
    raise FileStoreError(message, status_code=status)


class GitHubFileStore:
    """Read-then-write access to a single file in a GitHub repository."""

    def __init__(self, settings: Settings, session=None):
        self.settings = settings
        self._session = session or requests.Session()

    def _url(self, link: RepoLink) -> str:
        return (
            f"{self.settings.github_api_base}/repos/"
            f"{quote(link.owner, safe='')}/{quote(link.repo, safe='')}"
            f"/contents/{quote(link.path.lstrip('/'), safe='/')}"
        )

    @staticmethod
    def _headers(link: RepoLink) -> dict:
        # The stored token is the full Authorization header value ("token ..." / "Bearer ...")
        return {"Authorization": link.token, "Accept": ACCEPT_HEADER}

    def _send(self, method: str, link: RepoLink, **kwargs):
        try:
            return self._session.request(
                method,
                self._url(link),
                headers=self._headers(link),
                timeout=self.settings.github_timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as exc:
            raise TransientError(f"GitHub {method} {link.owner}/{link.repo} failed: {exc}") from exc

    def fetch_file(self, link: RepoLink) -> RemoteFile:
        """
        Fetches the current file content and its revision sha.
        Raises: NotFoundError, UnauthorizedError, TransientError, FileStoreError.
        """
        response = self._send("GET", link)
        _raise_for_status(response, "fetch", link)

        data = response.json()
        if isinstance(data, list) or "sha" not in data:
            raise FileStoreError(f"GitHub path {link.path} is not a file")

        raw = data.get("content") or ""
        if data.get("encoding", "base64") == "base64":
            content = base64.b64decode(raw).decode("utf-8")
        else:
            content = raw
        return RemoteFile(path=data.get("path", link.path), sha=data["sha"], content=content)

    def commit_file(self, link: RepoLink, content: Any, sha: str) -> str:
        """
        Replaces the file with content serialized as indented JSON.
        sha must be the revision last fetched; GitHub rejects stale ones.
        Returns the sha of the new file revision.
        Raises: ConflictError, UnauthorizedError, NotFoundError, TransientError, FileStoreError.
        """
        encoded = base64.b64encode(json.dumps(content, indent=2).encode("utf-8")).decode("ascii")
        payload = {
            "message": self.settings.commit_message,
            "content": encoded,
            "sha": sha,
            "branch": self.settings.github_branch,
        }
        response = self._send("PUT", link, json=payload)
        _raise_for_status(response, "commit", link)

        new_sha = (response.json().get("content") or {}).get("sha", "")
        logger.info(
            "Committed %s/%s/%s on %s (sha %s -> %s)",
            link.owner, link.repo, link.path, self.settings.github_branch, sha, new_sha,
        )
        return new_sha
