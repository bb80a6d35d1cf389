from __future__ import annotations

import errno
import os
import stat
from typing import Iterable

from rulem.errors import (
    AlreadyExistsError,
    ContainmentError,
    NotFoundError,
    PathLike,
    SymlinkError,
    translate_os_error,
)
from rulem.fileops.atomic import ensure_directory_exists
from rulem.fileops.guard import is_within


def _real_location(path: str) -> str:
    # Resolve the parent only so a symlinked target keeps its own name.
    parent, name = os.path.split(os.path.abspath(path))
    return os.path.join(os.path.realpath(parent), name)


def _require_target(target: str) -> None:
    if not os.path.exists(target):
        raise NotFoundError(target, "Symlink target does not exist")


def _make_link(link_value: str, link_path: str) -> None:
    try:
        os.symlink(link_value, link_path)
    except FileExistsError:
        raise AlreadyExistsError(link_path) from None
    except OSError as exc:
        raise SymlinkError(link_path, f"Failed to create symlink ({exc.strerror})") from exc


def create_relative_symlink(target: PathLike, link_path: PathLike) -> None:
    target_path = os.fspath(target)
    link = os.fspath(link_path)
    _require_target(target_path)

    link_dir = os.path.dirname(os.path.abspath(link))
    ensure_directory_exists(link_dir)
    relative = os.path.relpath(_real_location(target_path), os.path.realpath(link_dir))
    _make_link(relative, link)


def create_absolute_symlink(target: PathLike, link_path: PathLike) -> None:
    target_path = os.fspath(target)
    link = os.fspath(link_path)
    _require_target(target_path)

    ensure_directory_exists(os.path.dirname(os.path.abspath(link)))
    _make_link(os.path.abspath(target_path), link)


def is_symlink(path: PathLike) -> bool:
    try:
        info = os.lstat(os.fspath(path))
    except OSError as exc:
        raise translate_os_error(exc, path, "stat path") from exc
    return stat.S_ISLNK(info.st_mode)


def _require_symlink(path: str) -> None:
    if not is_symlink(path):
        raise SymlinkError(path, "Path is not a symbolic link")


def read_symlink_target(path: PathLike) -> str:
    link = os.fspath(path)
    _require_symlink(link)
    try:
        return os.readlink(link)
    except OSError as exc:
        raise translate_os_error(exc, link, "read symlink") from exc


def resolve_symlink(path: PathLike) -> str:
    """Follow the whole link chain and return the final absolute target."""
    link = os.fspath(path)
    try:
        return os.path.realpath(link, strict=True)
    except FileNotFoundError:
        raise SymlinkError(link, "Symlink target does not exist") from None
    except OSError as exc:
        if exc.errno == errno.ELOOP:
            raise SymlinkError(link, "Symlink loop detected") from exc
        raise translate_os_error(exc, link, "resolve symlink") from exc


def validate_symlink_security(link_path: PathLike, allowed_bases: Iterable[PathLike]) -> None:
    link = os.fspath(link_path)
    _require_symlink(link)
    resolved = resolve_symlink(link)

    for base in allowed_bases:
        base_text = os.fspath(base)
        if not base_text:
            continue
        canonical_base = os.path.realpath(os.path.abspath(base_text))
        if is_within(resolved, canonical_base):
            return
    raise ContainmentError(link, "Symlink target is outside allowed locations")


def remove_symlink(path: PathLike) -> None:
    link = os.fspath(path)
    if not is_symlink(link):
        raise SymlinkError(link, "Refusing to remove a path that is not a symlink")
    try:
        os.remove(link)
    except OSError as exc:
        raise translate_os_error(exc, link, "remove symlink") from exc
