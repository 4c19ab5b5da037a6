"""
Status line reporting.

The status string is the one user-visible channel for progress and failure
messages. Every update is also logged.
"""

from __future__ import annotations

from typing import Callable, List

from loguru import logger


class StatusReporter:
    """Holds the current status line and notifies listeners on change."""

    def __init__(self, initial: str = ""):
        self._message = initial
        self._listeners: List[Callable[[str], None]] = []

    def info(self, message: str):
        logger.info(message)
        self._set(message)

    def warning(self, message: str):
        logger.warning(message)
        self._set(message)

    def add_listener(self, listener: Callable[[str], None]):
        self._listeners.append(listener)

    def _set(self, message: str):
        self._message = message
        for listener in self._listeners:
            listener(message)

    @property
    def message(self) -> str:
        return self._message
