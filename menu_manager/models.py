"""Data models for menu-manager: MenuRecord, RepoLink, RemoteFile, UserProfile."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

MENU_PREFIX = "MENU#"
PROFILE_SORT_KEY = "PROFILE"

# Attribute names in the users table
PARTITION_KEY = "userid"
SORT_KEY = "sk"

LINK_FIELDS = ("owner", "repo", "path", "token")


def utc_timestamp(now: Optional[dt.datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = now or dt.datetime.now(dt.timezone.utc)
    now = now.astimezone(dt.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def menu_id_from_timestamp(timestamp: str) -> str:
    """Makes a timestamp URL-safe by replacing ':' and '.' with '-'."""
    return timestamp.replace(":", "-").replace(".", "-")


def to_dynamo(value: Any) -> Any:
    """Converts floats (at any depth) to Decimal so DynamoDB accepts them."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    """Converts Decimal (at any depth) back to int or float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [from_dynamo(v) for v in value]
    if isinstance(value, (set, frozenset)):
        # Number/string sets only appear if someone edits the table by hand
        return [from_dynamo(v) for v in sorted(value)]
    return value


@dataclass
class RepoLink:
    """Coordinates of the GitHub file a menu is mirrored into."""

    owner: str
    repo: str
    path: str
    token: str = field(repr=False)

    def to_json(self) -> dict:
        return {
            "owner": self.owner,
            "repo": self.repo,
            "path": self.path,
            "token": self.token,
        }

    @classmethod
    def from_json(cls, data: dict) -> Optional[RepoLink]:
        """Returns None unless all four link fields are non-empty strings."""
        values = [data.get(name) for name in LINK_FIELDS]
        if not all(isinstance(v, str) and v for v in values):
            return None
        return cls(*values)


@dataclass
class RemoteFile:
    path: str
    sha: str
    content: str


@dataclass
class MenuRecord:
    owner_id: str
    menu_id: str
    created_at: str
    menu: Any = None
    updated_at: Optional[str] = None
    link: Optional[RepoLink] = None

    @property
    def sort_key(self) -> str:
        return MENU_PREFIX + self.menu_id

    def to_json(self) -> dict:
        """Public shape returned by the API; never includes the link token."""
        return {"menuid": self.menu_id, "menu": self.menu}

    def attributes(self) -> dict:
        """Non-key attributes as written to the table."""
        item = {
            "createdAt": self.created_at,
            "menu": self.menu,
        }
        if self.updated_at is not None:
            item["updatedAt"] = self.updated_at
        if self.link is not None:
            item.update(self.link.to_json())
        return item

    @classmethod
    def from_item(cls, item: dict) -> MenuRecord:
        return cls(
            owner_id=item[PARTITION_KEY],
            menu_id=item[SORT_KEY][len(MENU_PREFIX):],
            created_at=item.get("createdAt", ""),
            menu=from_dynamo(item.get("menu")),
            updated_at=item.get("updatedAt"),
            link=RepoLink.from_json(item),
        )


@dataclass
class UserProfile:
    owner_id: str
    created_at: str
    profile: Any = None
    updated_at: Optional[str] = None

    def to_json(self) -> dict:
        return {"userid": self.owner_id, "profile": self.profile}

    def attributes(self) -> dict:
        item = {
            "createdAt": self.created_at,
            "profile": self.profile,
        }
        if self.updated_at is not None:
            item["updatedAt"] = self.updated_at
        return item

    @classmethod
    def from_item(cls, item: dict) -> UserProfile:
        return cls(
            owner_id=item[PARTITION_KEY],
            created_at=item.get("createdAt", ""),
            profile=from_dynamo(item.get("profile")),
            updated_at=item.get("updatedAt"),
        )
