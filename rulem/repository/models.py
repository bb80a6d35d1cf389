"""Repository data models."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from rulem.errors import ValidationError
from rulem.repository.urls import derive_clone_path
from rulem.utils import now_unix


class RepositoryType(str, Enum):
    LOCAL = "local"
    GITHUB = "github"


class SyncStatus(str, Enum):
    OK = "ok"
    STALE = "stale"
    DIRTY = "dirty"
    ERROR = "error"


_ID_INVALID_RUN = re.compile(r"[^a-z0-9]+")


def generate_repository_id(name: str, created_at: Optional[int] = None) -> str:
    if created_at is None:
        created_at = now_unix()
    slug = _ID_INVALID_RUN.sub("-", name.lower()).strip("-") or "repo"
    return f"{slug}-{created_at}"


def _optional_str(data: dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return str(value)
    return None


def _optional_int(data: dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Field '{key}' must be an integer") from exc


@dataclass
class RepositoryEntry:
    id: str
    name: str
    type: RepositoryType
    created_at: int
    path: str
    url: Optional[str] = None
    branch: Optional[str] = None
    credential_ref: Optional[str] = None
    last_sync_time: Optional[int] = None

    @property
    def is_remote(self) -> bool:
        return self.type == RepositoryType.GITHUB

    @property
    def is_local(self) -> bool:
        return self.type == RepositoryType.LOCAL

    @classmethod
    def new_local(cls, name: str, path: str) -> "RepositoryEntry":
        created_at = now_unix()
        return cls(
            id=generate_repository_id(name, created_at),
            name=name.strip(),
            type=RepositoryType.LOCAL,
            created_at=created_at,
            path=path,
        )

    @classmethod
    def new_github(
        cls,
        name: str,
        url: str,
        branch: Optional[str] = None,
        path: Optional[str] = None,
        credential_ref: Optional[str] = None,
    ) -> "RepositoryEntry":
        created_at = now_unix()
        return cls(
            id=generate_repository_id(name, created_at),
            name=name.strip(),
            type=RepositoryType.GITHUB,
            created_at=created_at,
            path=path or derive_clone_path(url),
            url=url.strip(),
            branch=branch or None,
            credential_ref=credential_ref or None,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepositoryEntry":
        if not isinstance(data, dict):
            raise ValidationError("Repository entry must be a mapping")
        try:
            repo_type = RepositoryType(str(data.get("type", "")))
        except ValueError as exc:
            raise ValidationError(
                f"Invalid repository type '{data.get('type')}' (expected local or github)"
            ) from exc
        created_at = _optional_int(data, "created_at")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            type=repo_type,
            created_at=created_at or 0,
            path=str(data.get("path") or ""),
            url=_optional_str(data, "url", "remote_url"),
            branch=_optional_str(data, "branch"),
            credential_ref=_optional_str(data, "credential_ref"),
            last_sync_time=_optional_int(data, "last_sync_time"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "created_at": self.created_at,
            "path": self.path,
        }
        for key in ("url", "branch", "credential_ref", "last_sync_time"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True)
class SyncResult:
    status: SyncStatus
    message: str = ""

    @property
    def is_error(self) -> bool:
        return self.status == SyncStatus.ERROR


@dataclass(frozen=True)
class PreparedRepository:
    entry: RepositoryEntry
    local_path: str
    sync: SyncResult = field(default_factory=lambda: SyncResult(SyncStatus.OK))

    @property
    def id(self) -> str:
        return self.entry.id

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def type(self) -> RepositoryType:
        return self.entry.type

    @property
    def status(self) -> SyncStatus:
        return self.sync.status


@dataclass(frozen=True)
class RepositoryFailure:
    repository_id: str
    repository_name: str
    message: str

    def describe(self) -> str:
        return f"repository {self.repository_id} ({self.repository_name}): {self.message}"


@dataclass
class PreparationResult:
    prepared: list[PreparedRepository] = field(default_factory=list)
    failures: list[RepositoryFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
