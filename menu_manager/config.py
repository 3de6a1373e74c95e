"""Runtime configuration, read once per Lambda cold start."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

GITHUB_API_BASE = "https://api.github.com"
GITHUB_BRANCH = "main"
COMMIT_MESSAGE = "Update JSON file"
DEFAULT_GITHUB_TIMEOUT = 10.0  # seconds, well under the API Gateway 29s limit


@dataclass(frozen=True)
class Settings:
    table_name: str
    github_api_base: str = GITHUB_API_BASE
    github_branch: str = GITHUB_BRANCH
    commit_message: str = COMMIT_MESSAGE
    github_timeout: float = DEFAULT_GITHUB_TIMEOUT
    region_name: Optional[str] = None

    @classmethod
    def from_env(cls, environ=None) -> Settings:
        """
        Builds Settings from the process environment.
        Raises: KeyError if USERS_TABLE is not set.
        """
        env = os.environ if environ is None else environ
        return cls(
            table_name=env["USERS_TABLE"],
            github_api_base=env.get("GITHUB_API_BASE", GITHUB_API_BASE).rstrip("/"),
            github_timeout=float(
                env.get("GITHUB_TIMEOUT_SECONDS", DEFAULT_GITHUB_TIMEOUT)
            ),
            region_name=env.get("AWS_REGION") or None,
        )
