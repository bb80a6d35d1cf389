"""Crash-safe writes: temp file, fsync, rename."""

from __future__ import annotations

import os
import shutil
from typing import Optional

from rulem.constants import DIR_MODE, FILE_MODE, WRITE_PROBE_FILENAME
from rulem.errors import AccessError, PathLike, translate_os_error
from rulem.fileops.guard import expand_path
from rulem.log import Logger


_TEMP_SUFFIX = ".tmp"


def atomic_copy(src: PathLike, dst: PathLike) -> None:
    """Copy ``src`` over ``dst`` so that readers only ever see old or new bytes.

    The data is streamed into ``<dst>.tmp``, flushed to disk and renamed over
    the destination. Any failure before the rename removes the temp file and
    leaves ``dst`` untouched.
    """
    src_path = os.fspath(src)
    dst_path = os.fspath(dst)
    temp_path = dst_path + _TEMP_SUFFIX

    try:
        source = open(src_path, "rb")
    except OSError as exc:
        raise translate_os_error(exc, src_path, "open source file") from exc

    with source:
        flags = os.O_CREAT | os.O_WRONLY | os.O_TRUNC | getattr(os, "O_NOFOLLOW", 0)
        try:
            fd = os.open(temp_path, flags, FILE_MODE)
        except OSError as exc:
            raise translate_os_error(exc, temp_path, "create temporary file") from exc

        renamed = False
        try:
            with os.fdopen(fd, "wb") as target:
                shutil.copyfileobj(source, target)
                target.flush()
                os.fsync(target.fileno())
            os.replace(temp_path, dst_path)
            renamed = True
        except OSError as exc:
            raise translate_os_error(exc, dst_path, "copy file") from exc
        finally:
            if not renamed and os.path.lexists(temp_path):
                os.remove(temp_path)


def ensure_directory_exists(path: PathLike) -> None:
    try:
        os.makedirs(os.fspath(path), mode=DIR_MODE, exist_ok=True)
    except OSError as exc:
        raise translate_os_error(exc, path, "create directory") from exc


def validate_directory_writable(path: PathLike, logger: Optional[Logger] = None) -> None:
    directory = expand_path(path)
    ensure_directory_exists(directory)

    probe = os.path.join(directory, WRITE_PROBE_FILENAME)
    try:
        fd = os.open(probe, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, FILE_MODE)
        with os.fdopen(fd, "wb") as handle:
            handle.write(b"test")
    except OSError as exc:
        raise AccessError(directory, "No write permission in directory") from exc

    try:
        os.remove(probe)
    except OSError as exc:
        if logger is not None:
            logger.warning("Failed to remove write probe", path=probe, error=str(exc))


def is_dir_empty(path: PathLike) -> bool:
    try:
        with os.scandir(os.fspath(path)) as entries:
            return next(entries, None) is None
    except OSError as exc:
        raise translate_os_error(exc, path, "read directory") from exc
