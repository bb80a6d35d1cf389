"""Open files in the user's editor."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from typing import Optional

from rulem.errors import ExternalError, PathLike
from rulem.log import Logger, get_logger

FALLBACK_EDITORS = ("nano", "vi")


def resolve_editor() -> list[str]:
    configured = os.environ.get("EDITOR", "").strip()
    if configured:
        return shlex.split(configured)
    for candidate in FALLBACK_EDITORS:
        if shutil.which(candidate):
            return [candidate]
    raise ExternalError(
        "No editor found",
        hint="set $EDITOR or install nano or vi",
    )


def edit_file(path: PathLike, logger: Optional[Logger] = None) -> None:
    log = logger or get_logger(__name__)
    command = [*resolve_editor(), os.fspath(path)]
    log.debug("Launching editor", command=command)
    try:
        completed = subprocess.run(command, check=False)
    except OSError as exc:
        raise ExternalError(f"Failed to start editor '{command[0]}' ({exc})") from exc
    if completed.returncode != 0:
        raise ExternalError(
            f"Editor '{command[0]}' exited with status {completed.returncode}"
        )
