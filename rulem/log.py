"""structlog setup shared by the CLI, TUI and MCP entry points."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional, Protocol

import structlog

from rulem.constants import DEBUG_LOG_FILENAME


class Logger(Protocol):
    def debug(self, event: str, **kw: Any) -> Any: ...

    def info(self, event: str, **kw: Any) -> Any: ...

    def warning(self, event: str, **kw: Any) -> Any: ...

    def error(self, event: str, **kw: Any) -> Any: ...


def debug_requested() -> bool:
    return bool(os.environ.get("DEBUG"))


def configure_logging(debug: bool = False, log_dir: Optional[Path] = None) -> Optional[Path]:
    """Configure structlog for the process.

    Without ``debug`` only warnings and errors reach stderr, so the TUI and the
    MCP stdio channel stay clean. With ``debug`` everything down to DEBUG is
    written to ``rulem.log`` in ``log_dir`` (the current directory by default)
    and the path of that file is returned.
    """
    log_path: Optional[Path] = None
    if debug:
        log_path = (log_dir or Path.cwd()) / DEBUG_LOG_FILENAME
        stream = log_path.open("w", encoding="utf-8")
        level = logging.DEBUG
        renderer: Any = structlog.dev.ConsoleRenderer(colors=False)
    else:
        stream = sys.stderr
        level = logging.WARNING
        renderer = structlog.processors.KeyValueRenderer(
            key_order=["timestamp", "level", "event"]
        )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )
    if log_path is not None:
        get_logger("rulem").info("Debug logging enabled", log_file=str(log_path))
    return log_path


def get_logger(name: str = "rulem", **context: Any) -> Logger:
    return structlog.get_logger(name, **context)
