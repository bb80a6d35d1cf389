from __future__ import annotations

from typing import Sequence

from rulem.constants import MAX_REPOSITORY_NAME_LENGTH
from rulem.errors import ValidationError
from rulem.repository.models import RepositoryEntry, RepositoryType
from rulem.repository.urls import parse_git_url


def validate_repository_name(name: str) -> None:
    trimmed = name.strip()
    if not trimmed:
        raise ValidationError("Repository name cannot be empty")
    if len(trimmed) > MAX_REPOSITORY_NAME_LENGTH:
        raise ValidationError(
            f"Repository name too long ({len(trimmed)} characters, maximum {MAX_REPOSITORY_NAME_LENGTH})"
        )
    if any(ord(char) < 32 or ord(char) == 127 for char in trimmed):
        raise ValidationError("Repository name contains invalid control characters")


def validate_repository_path(path: str) -> None:
    trimmed = path.strip()
    if not trimmed:
        raise ValidationError("Repository path cannot be empty")
    if "\x00" in trimmed:
        raise ValidationError("Repository path contains null bytes")


def _validate_id(repository_id: str) -> None:
    if not repository_id:
        raise ValidationError("Repository ID cannot be empty")
    prefix, sep, stamp = repository_id.rpartition("-")
    if not sep or not prefix:
        raise ValidationError(
            f"Invalid repository ID format '{repository_id}' (expected: name-timestamp)"
        )
    if not stamp.isdigit():
        raise ValidationError(
            f"Invalid repository ID format '{repository_id}' (timestamp must be numeric)"
        )


def validate_repository_entry(entry: RepositoryEntry) -> None:
    _validate_id(entry.id)
    validate_repository_name(entry.name)
    if entry.created_at <= 0:
        raise ValidationError(
            f"Invalid created_at timestamp: {entry.created_at} (must be positive Unix timestamp)"
        )
    validate_repository_path(entry.path)

    if entry.type == RepositoryType.GITHUB:
        if not entry.url or not entry.url.strip():
            raise ValidationError("GitHub repository must have a remote URL")
        parse_git_url(entry.url)
        if entry.branch is not None and not entry.branch.strip():
            raise ValidationError("Branch cannot be an empty string (omit it for the default branch)")
        if entry.last_sync_time is not None and entry.last_sync_time <= 0:
            raise ValidationError(
                f"last_sync_time must be a positive Unix timestamp, got: {entry.last_sync_time}"
            )
    else:
        if entry.url:
            raise ValidationError("Local repository should not have a remote URL")
        if entry.branch:
            raise ValidationError("Local repository should not have a branch")
        if entry.credential_ref:
            raise ValidationError("Local repository should not have a credential reference")
        if entry.last_sync_time is not None:
            raise ValidationError("Local repository should not have a last_sync_time")


def validate_all_repositories(entries: Sequence[RepositoryEntry]) -> None:
    seen_ids: dict[str, str] = {}
    for entry in entries:
        if entry.id in seen_ids:
            raise ValidationError(
                f"Duplicate repository ID '{entry.id}' found in repositories "
                f"'{seen_ids[entry.id]}' and '{entry.name}'"
            )
        seen_ids[entry.id] = entry.name

    seen_names: dict[str, str] = {}
    for entry in entries:
        key = entry.name.strip().casefold()
        if key in seen_names:
            raise ValidationError(
                f"Duplicate repository name found: '{seen_names[key]}' and '{entry.name}' "
                "(names must be unique, case-insensitive)"
            )
        seen_names[key] = entry.name

    problems: list[str] = []
    for index, entry in enumerate(entries):
        try:
            validate_repository_entry(entry)
        except ValidationError as exc:
            problems.append(f"repository[{index}] ({entry.name}): {exc.message}")
    if problems:
        raise ValidationError("Repository validation failed:\n  - " + "\n  - ".join(problems))
