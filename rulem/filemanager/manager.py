"""File operations between a storage directory and the working directory."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Optional

from rulem.constants import DEFAULT_MAX_DEPTH, DEFAULT_SKIP_PATTERNS, STORAGE_MAX_DEPTH
from rulem.errors import (
    AlreadyExistsError,
    NotFoundError,
    PathLike,
    PathValidationError,
    SymlinkError,
    ValidationReason,
    translate_os_error,
)
from rulem.fileops.atomic import atomic_copy, ensure_directory_exists, validate_directory_writable
from rulem.fileops.guard import (
    expand_path,
    is_reserved_directory,
    is_within,
    sanitize_filename,
    validate_cwd_path,
    validate_file_access,
    validate_file_in_directory,
    validate_storage_path,
)
from rulem.fileops.sandbox import SandboxRoot
from rulem.fileops.scanner import DirectoryScanOptions, SecureDirectoryScanner
from rulem.fileops.symlinks import (
    create_relative_symlink,
    is_symlink,
    resolve_symlink,
    validate_symlink_security,
)
from rulem.filemanager.models import FileItem, is_markdown_file
from rulem.log import Logger, get_logger
from rulem.tasks import CancelToken


class FileManager:
    """Stateful handle bound to one storage directory.

    The storage path is validated once at construction and must already exist.
    Writes into storage or into the working directory go through
    :func:`~rulem.fileops.atomic.atomic_copy`, so a destination is either fully
    replaced or left alone.

    The manager owns a sandbox on the storage root; close it (or use the
    manager as a context manager) when done.
    """

    def __init__(
        self,
        storage_dir: PathLike,
        logger: Optional[Logger] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> None:
        text = os.fspath(storage_dir).strip()
        validate_storage_path(text)
        absolute = os.path.abspath(expand_path(text))
        if not os.path.exists(absolute):
            raise NotFoundError(absolute, "Storage directory does not exist")
        if not os.path.isdir(absolute):
            raise PathValidationError(
                ValidationReason.NOT_A_DIRECTORY, "Storage path is not a directory", absolute
            )

        self._storage_dir = absolute
        self._sandbox = SandboxRoot(absolute)
        self._logger = logger or get_logger(__name__)
        self._cancel_token = cancel_token

    @property
    def storage_dir(self) -> str:
        return self._storage_dir

    def close(self) -> None:
        self._sandbox.close()

    def __enter__(self) -> "FileManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _destination_name(self, src_path: str, new_name: Optional[str]) -> str:
        if new_name is None:
            return sanitize_filename(os.path.basename(src_path))
        if ".." in new_name or "/" in new_name or "\\" in new_name:
            raise PathValidationError(
                ValidationReason.INVALID_FILENAME,
                "Filename contains path separators or traversal attempts",
                new_name,
            )
        clean = sanitize_filename(new_name)
        if clean != new_name:
            raise PathValidationError(ValidationReason.INVALID_FILENAME, "Invalid filename", new_name)
        return clean

    def _validate_source(self, absolute: str, original: PathLike) -> None:
        try:
            info = os.stat(absolute)
        except FileNotFoundError:
            raise NotFoundError(original, "Source file does not exist") from None
        except OSError as exc:
            raise translate_os_error(exc, original, "access source file") from exc
        if stat.S_ISDIR(info.st_mode):
            raise PathValidationError(
                ValidationReason.IS_DIRECTORY, "Source is a directory, not a file", original
            )
        if is_symlink(absolute) and is_reserved_directory(resolve_symlink(absolute)):
            raise SymlinkError(original, "Source symlink points into a reserved directory")
        validate_file_access(absolute)

    def copy_file_to_storage(
        self,
        src_path: PathLike,
        new_name: Optional[str] = None,
        overwrite: bool = False,
    ) -> str:
        absolute = os.path.abspath(expand_path(src_path))
        self._validate_source(absolute, src_path)

        file_name = self._destination_name(absolute, new_name)
        destination = self._sandbox.locate(file_name)
        if os.path.lexists(destination):
            if not overwrite:
                raise AlreadyExistsError(file_name)
            self._logger.debug("Overwriting existing file", dest=destination)

        validate_directory_writable(self._storage_dir, self._logger)
        atomic_copy(absolute, destination)
        result = os.path.join(self._storage_dir, file_name)
        self._logger.info("File copied to storage", src=str(src_path), dest=result)
        return result

    def resolve_storage_file(self, storage_path: PathLike) -> str:
        text = expand_path(storage_path)
        if not os.path.isabs(text):
            text = os.path.join(self._storage_dir, text)
        absolute = os.path.abspath(text)
        base = self._storage_dir if is_within(absolute, self._storage_dir) else self._sandbox.path
        validate_file_in_directory(absolute, base)
        return absolute

    def _prepare_cwd_destination(self, dest_path: str, overwrite: bool) -> str:
        with SandboxRoot(os.getcwd()) as cwd_root:
            destination = cwd_root.locate(dest_path)
        ensure_directory_exists(os.path.dirname(destination))

        if os.path.lexists(destination):
            if not overwrite:
                raise AlreadyExistsError(dest_path)
            if os.path.isdir(destination) and not os.path.islink(destination):
                raise PathValidationError(
                    ValidationReason.IS_DIRECTORY, "Destination is a directory", dest_path
                )
        return destination

    def copy_file_from_storage(
        self, storage_path: PathLike, dest_path: str, overwrite: bool = False
    ) -> str:
        validate_cwd_path(dest_path)
        source = self.resolve_storage_file(storage_path)
        destination = self._prepare_cwd_destination(dest_path, overwrite)

        atomic_copy(source, destination)
        self._logger.info("File copied from storage", src=source, dest=destination)
        return destination

    def create_symlink_from_storage(
        self, storage_path: PathLike, dest_path: str, overwrite: bool = False
    ) -> str:
        validate_cwd_path(dest_path)
        source = self.resolve_storage_file(storage_path)
        destination = self._prepare_cwd_destination(dest_path, overwrite)

        if os.path.lexists(destination):
            try:
                os.remove(destination)
            except OSError as exc:
                raise translate_os_error(exc, destination, "remove existing destination") from exc
            self._logger.debug("Removed existing file for symlink", dest=destination)

        create_relative_symlink(source, destination)
        self._logger.info("Symlink created", target=source, link=destination)
        return destination

    def _scan(self, root: str, max_depth: int) -> list[FileItem]:
        options = DirectoryScanOptions(
            max_depth=max_depth,
            skip_patterns=list(DEFAULT_SKIP_PATTERNS),
            file_filter=is_markdown_file,
        )
        with SecureDirectoryScanner(
            root, options, logger=self._logger, cancel_token=self._cancel_token
        ) as scanner:
            files = scanner.scan()
        return [
            FileItem(name=item.name, path=os.path.join(root, item.path))
            for item in files
            if not item.is_dir
        ]

    def scan_storage(self) -> list[FileItem]:
        root = self._storage_dir
        if is_symlink(root):
            self._logger.debug("Storage directory is a symlink, validating", path=root)
            validate_symlink_security(root, [os.getcwd(), str(Path.home())])
            root = resolve_symlink(root)
        validate_storage_path(root)

        items = self._scan(root, STORAGE_MAX_DEPTH)
        self._logger.debug("Scanned storage for markdown files", file_count=len(items))
        return items

    def scan_cwd(self) -> list[FileItem]:
        items = self._scan(os.getcwd(), DEFAULT_MAX_DEPTH)
        self._logger.debug("Scanned current directory for markdown files", file_count=len(items))
        return items

    def get_absolute_path(self, item: FileItem) -> str:
        if os.path.isabs(item.path):
            return item.path
        return os.path.join(self._storage_dir, item.path)

    def get_cwd_absolute_path(self, item: FileItem) -> str:
        if os.path.isabs(item.path):
            return item.path
        return os.path.join(os.getcwd(), item.path)
