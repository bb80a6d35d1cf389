"""Cooperative cancellation shared by scans, git calls and MCP handlers."""

from __future__ import annotations

import threading
from typing import Optional

from rulem.errors import CanceledError


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str = "operation") -> None:
        if self._event.is_set():
            raise CanceledError(operation)


def check_cancelled(token: Optional[CancelToken], operation: str) -> None:
    if token is not None:
        token.raise_if_cancelled(operation)
