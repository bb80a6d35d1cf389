"""A directory handle that only ever touches paths under its root.

The root is resolved once when the sandbox opens. Every later operation takes
a root-relative path, resolves it through any symlinks and refuses to act when
the result does not start with the root.
"""

from __future__ import annotations

import os
from typing import IO, Optional

from rulem.constants import DIR_MODE
from rulem.errors import (
    ContainmentError,
    NotFoundError,
    PathLike,
    PathValidationError,
    ScannerClosedError,
    ValidationReason,
    translate_os_error,
)
from rulem.fileops.guard import is_within


class SandboxRoot:
    def __init__(self, root: PathLike) -> None:
        absolute = os.path.abspath(os.fspath(root))
        if not os.path.exists(absolute):
            raise NotFoundError(absolute, "Sandbox root does not exist")
        if not os.path.isdir(absolute):
            raise PathValidationError(
                ValidationReason.NOT_A_DIRECTORY, "Sandbox root is not a directory", absolute
            )
        self._root = os.path.realpath(absolute)
        self._closed = False

    @property
    def path(self) -> str:
        return self._root

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "SandboxRoot":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise ScannerClosedError()

    def _candidate(self, relative: PathLike) -> str:
        self._check_open()
        text = os.fspath(relative)
        if os.path.isabs(text):
            raise ContainmentError(text, "Absolute paths are not allowed in sandbox")
        return os.path.normpath(os.path.join(self._root, text))

    def _gate(self, path: str, original: PathLike) -> str:
        if not is_within(path, self._root):
            raise ContainmentError(os.fspath(original), "Path escapes sandbox root")
        return path

    def resolve(self, relative: PathLike) -> str:
        """Absolute path for ``relative`` with every symlink followed."""
        return self._gate(os.path.realpath(self._candidate(relative)), relative)

    def locate(self, relative: PathLike) -> str:
        """Like :meth:`resolve` but leaves the final component unresolved."""
        candidate = self._candidate(relative)
        parent, name = os.path.split(candidate)
        located = os.path.join(os.path.realpath(parent), name)
        return self._gate(located, relative)

    def list_dir(self, relative: PathLike = ".") -> list[os.DirEntry]:
        resolved = self.resolve(relative)
        try:
            with os.scandir(resolved) as entries:
                return list(entries)
        except OSError as exc:
            raise translate_os_error(exc, resolved, "read directory") from exc

    open_dir = list_dir

    def stat(self, relative: PathLike) -> os.stat_result:
        resolved = self.resolve(relative)
        try:
            return os.stat(resolved)
        except OSError as exc:
            raise translate_os_error(exc, resolved, "stat path") from exc

    def lstat(self, relative: PathLike) -> os.stat_result:
        located = self.locate(relative)
        try:
            return os.lstat(located)
        except OSError as exc:
            raise translate_os_error(exc, located, "stat path") from exc

    def open_file(self, relative: PathLike, mode: str = "rb") -> IO:
        resolved = self.resolve(relative)
        try:
            return open(resolved, mode)
        except OSError as exc:
            raise translate_os_error(exc, resolved, "open file") from exc

    def mkdir(self, relative: PathLike, mode: Optional[int] = None) -> None:
        located = self.locate(relative)
        try:
            os.mkdir(located, DIR_MODE if mode is None else mode)
        except OSError as exc:
            raise translate_os_error(exc, located, "create directory") from exc

    def remove(self, relative: PathLike) -> None:
        located = self.locate(relative)
        try:
            os.remove(located)
        except OSError as exc:
            raise translate_os_error(exc, located, "remove file") from exc
