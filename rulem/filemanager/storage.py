"""Storage root helpers used by first-run setup and the settings flows."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Optional

from rulem.errors import NotFoundError, PathValidationError, ValidationReason
from rulem.fileops.atomic import ensure_directory_exists, validate_directory_writable
from rulem.fileops.guard import expand_path, validate_path_in_home
from rulem.fileops.sandbox import SandboxRoot
from rulem.log import Logger, get_logger
from rulem.utils import default_storage_dir


def get_default_storage_dir() -> str:
    return default_storage_dir()


def ensure_local_storage_directory(path: str, logger: Optional[Logger] = None) -> str:
    """Create ``path`` inside the home directory and prove it is writable.

    Returns the absolute storage path. Anything outside ``~`` is refused.
    """
    log = logger or get_logger(__name__)
    if not path.strip():
        raise PathValidationError(
            ValidationReason.EMPTY_PATH, "Storage directory cannot be empty"
        )
    expanded = os.path.abspath(expand_path(path.strip()))
    relative = validate_path_in_home(expanded)

    with SandboxRoot(Path.home()) as home:
        try:
            info = home.stat(relative)
        except NotFoundError:
            ensure_directory_exists(home.locate(relative))
            log.debug("Created storage directory", path=expanded)
        else:
            if not stat.S_ISDIR(info.st_mode):
                raise PathValidationError(
                    ValidationReason.NOT_A_DIRECTORY, "Path exists but is not a directory", expanded
                )
            log.debug("Storage directory already exists", path=expanded)

    validate_directory_writable(expanded, log)
    return expanded
