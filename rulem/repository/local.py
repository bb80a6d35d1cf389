from __future__ import annotations

import os
from typing import Optional

from rulem.errors import PathValidationError, ValidationReason
from rulem.fileops.atomic import ensure_directory_exists
from rulem.fileops.guard import expand_path, validate_storage_path
from rulem.log import Logger, get_logger
from rulem.repository.models import SyncResult, SyncStatus


class LocalSource:
    """A repository that already lives on disk."""

    def __init__(self, path: str, logger: Optional[Logger] = None) -> None:
        self.path = path
        self._logger = logger or get_logger(__name__)

    def prepare(self) -> tuple[str, SyncResult]:
        self._logger.info("Preparing local repository source", path=self.path)
        trimmed = self.path.strip()
        if not trimmed:
            raise PathValidationError(
                ValidationReason.EMPTY_PATH, "Local source path cannot be empty"
            )

        expanded = os.path.normpath(expand_path(trimmed))
        validate_storage_path(expanded)
        absolute = os.path.abspath(expanded)

        if not os.path.exists(absolute):
            self._logger.info("Creating missing local repository directory", path=absolute)
            ensure_directory_exists(absolute)
        elif not os.path.isdir(absolute):
            raise PathValidationError(
                ValidationReason.NOT_A_DIRECTORY,
                "Local source path is not a directory",
                absolute,
            )

        self._logger.debug("Local repository source validated", resolved_path=absolute)
        return absolute, SyncResult(SyncStatus.OK)

    def __repr__(self) -> str:
        return f"LocalSource(path={self.path!r})"
