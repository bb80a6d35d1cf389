"""Bounded recursive directory traversal confined to a sandbox root."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Sequence

from rulem.constants import DEFAULT_MAX_DEPTH, DEFAULT_SKIP_PATTERNS
from rulem.errors import (
    AccessError,
    ContainmentError,
    FileIOError,
    NotFoundError,
    PathLike,
    PathValidationError,
    RulemError,
    ScannerClosedError,
    SymlinkError,
    ValidationError,
    ValidationReason,
    translate_os_error,
)
from rulem.fileops.guard import expand_path, validate_file_access, validate_path_security
from rulem.fileops.sandbox import SandboxRoot
from rulem.fileops.symlinks import validate_symlink_security
from rulem.log import Logger, get_logger
from rulem.tasks import CancelToken, check_cancelled


# Failures that only cost the current entry when skip_unreadable_dirs is set.
_ENTRY_ERRORS = (
    ValidationError,
    NotFoundError,
    AccessError,
    FileIOError,
    ContainmentError,
    SymlinkError,
)


@dataclass
class DirectoryScanOptions:
    skip_unreadable_dirs: bool = True
    max_depth: int = DEFAULT_MAX_DEPTH
    include_hidden: bool = True
    skip_patterns: Sequence[str] = field(default_factory=lambda: list(DEFAULT_SKIP_PATTERNS))
    file_filter: Optional[Callable[[str], bool]] = None
    dir_filter: Optional[Callable[[str], bool]] = None
    validate_file_access: bool = False


@dataclass(frozen=True)
class ScannedFile:
    name: str
    path: str
    is_dir: bool
    size: int
    mod_time: datetime
    mode: int


@dataclass(frozen=True)
class ScanStats:
    total_files: int = 0
    total_directories: int = 0
    skipped_directories: int = 0
    total_size: int = 0
    largest_file: Optional[str] = None
    largest_size: int = 0


class SecureDirectoryScanner:
    """Scan one root directory without ever leaving it.

    Directory reads go through a :class:`SandboxRoot`, and symlinked entries
    are checked against the scan root before they are followed or reported.
    Results carry paths relative to the root, in name order per directory.

    The scanner owns its sandbox; use it as a context manager or call
    :meth:`close` when done.
    """

    def __init__(
        self,
        scan_path: PathLike,
        options: Optional[DirectoryScanOptions] = None,
        logger: Optional[Logger] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> None:
        text = os.fspath(scan_path)
        if not text.strip():
            raise PathValidationError(
                ValidationReason.EMPTY_PATH, "Scan path cannot be empty"
            )
        absolute = os.path.abspath(expand_path(text))
        validate_path_security(absolute)

        self._scan_path = absolute
        self._sandbox = SandboxRoot(absolute)
        self._options = options or DirectoryScanOptions()
        self._logger = logger or get_logger(__name__)
        self._cancel_token = cancel_token
        self._results: list[ScannedFile] = []
        self._visited: set[str] = set()
        self._ancestors: list[str] = []
        self._directories = 0
        self._skipped = 0

    @property
    def scan_path(self) -> str:
        return self._scan_path

    @property
    def options(self) -> DirectoryScanOptions:
        return self._options

    @property
    def results(self) -> list[ScannedFile]:
        return list(self._results)

    def close(self) -> None:
        self._sandbox.close()

    def __enter__(self) -> "SecureDirectoryScanner":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def scan(self) -> list[ScannedFile]:
        if self._sandbox.closed:
            raise ScannerClosedError()

        self._results = []
        self._visited = set()
        self._ancestors = []
        self._directories = 0
        self._skipped = 0
        self._logger.debug(
            "Starting directory scan",
            path=self._scan_path,
            max_depth=self._options.max_depth,
        )
        self._scan_directory(".", 1)
        self._logger.debug(
            "Directory scan complete",
            path=self._scan_path,
            files=len(self._results),
            directories=self._directories,
            skipped=self._skipped,
        )
        return list(self._results)

    def stats(self) -> ScanStats:
        largest: Optional[ScannedFile] = None
        total_size = 0
        for item in self._results:
            total_size += item.size
            if largest is None or item.size > largest.size:
                largest = item
        return ScanStats(
            total_files=len(self._results),
            total_directories=self._directories,
            skipped_directories=self._skipped,
            total_size=total_size,
            largest_file=largest.path if largest else None,
            largest_size=largest.size if largest else 0,
        )

    def _skip(self, exc: RulemError, relative: str) -> None:
        if not self._options.skip_unreadable_dirs:
            raise exc
        self._logger.debug("Skipping entry", path=relative, error=str(exc))

    def _scan_directory(self, relative: str, depth: int, linked: bool = False) -> None:
        if depth > self._options.max_depth:
            return

        key = os.path.normpath(relative)
        try:
            real = self._sandbox.resolve(relative)
        except _ENTRY_ERRORS as exc:
            self._skip(exc, relative)
            return
        # Linked directories are refused only when they point back up the tree.
        if key in self._visited or (linked and real in self._ancestors):
            return
        self._visited.add(key)
        self._ancestors.append(real)
        try:
            self._list_directory(relative, depth)
        finally:
            self._ancestors.pop()

    def _list_directory(self, relative: str, depth: int) -> None:
        try:
            entries = self._sandbox.list_dir(relative)
        except _ENTRY_ERRORS as exc:
            self._skipped += 1
            self._skip(exc, relative)
            return
        self._directories += 1

        for entry in sorted(entries, key=lambda item: item.name):
            check_cancelled(self._cancel_token, "directory scan")
            entry_relative = entry.name if relative == "." else os.path.join(relative, entry.name)
            try:
                linked = entry.is_symlink()
                is_dir = entry.is_dir()
            except OSError as exc:
                self._skip(translate_os_error(exc, entry_relative, "stat entry"), entry_relative)
                continue

            if is_dir:
                if not self._should_enter(entry.name):
                    self._skipped += 1
                    continue
                if linked and not self._symlink_allowed(entry_relative):
                    self._skipped += 1
                    continue
                self._scan_directory(entry_relative, depth + 1, linked)
                continue

            if not self._should_include(entry.name):
                continue
            if linked and not self._symlink_allowed(entry_relative):
                continue
            record = self._build_record(entry, entry_relative)
            if record is not None:
                self._results.append(record)

    def _should_enter(self, name: str) -> bool:
        if not self._options.include_hidden and name.startswith("."):
            return False
        if name in self._options.skip_patterns:
            return False
        if self._options.dir_filter is not None:
            return self._options.dir_filter(name)
        return True

    def _should_include(self, name: str) -> bool:
        if not self._options.include_hidden and name.startswith("."):
            return False
        if self._options.file_filter is not None:
            return self._options.file_filter(name)
        return True

    def _symlink_allowed(self, relative: str) -> bool:
        full_path = os.path.join(self._scan_path, relative)
        try:
            validate_symlink_security(full_path, [self._sandbox.path])
        except _ENTRY_ERRORS as exc:
            self._skip(exc, relative)
            return False
        return True

    def _build_record(self, entry: os.DirEntry, relative: str) -> Optional[ScannedFile]:
        try:
            info = self._sandbox.stat(relative)
            if self._options.validate_file_access:
                validate_file_access(self._sandbox.resolve(relative))
        except _ENTRY_ERRORS as exc:
            self._skip(exc, relative)
            return None
        return ScannedFile(
            name=entry.name,
            path=relative,
            is_dir=False,
            size=info.st_size,
            mod_time=datetime.fromtimestamp(info.st_mtime),
            mode=info.st_mode,
        )


def scan_with_filter(
    root: PathLike,
    file_filter: Callable[[str], bool],
    max_depth: int = DEFAULT_MAX_DEPTH,
    logger: Optional[Logger] = None,
) -> list[ScannedFile]:
    options = DirectoryScanOptions(
        max_depth=max_depth,
        include_hidden=False,
        file_filter=file_filter,
    )
    with SecureDirectoryScanner(root, options, logger=logger) as scanner:
        return scanner.scan()
