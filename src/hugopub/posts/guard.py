"""
Stale-response guard for debounced callers.

Searches and duplicate checks issued while the user types can complete out
of order. Each request takes a ticket; only the newest ticket's result should
be applied.
"""

from __future__ import annotations

import itertools
import threading


class RequestGuard:
    """Generation counter that identifies the latest request."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest = 0
        self._lock = threading.Lock()

    def issue(self) -> int:
        """Start a new request and return its ticket."""
        with self._lock:
            self._latest = next(self._counter)
            return self._latest

    def is_current(self, ticket: int) -> bool:
        """True if no newer request has been issued since ``ticket``."""
        with self._lock:
            return ticket == self._latest
