"""
Duplicate Notification Suppression.

Tracks recently delivered notification keys so identical joins within a
short window produce a single message. Each key owns a timer that prunes
it when the window elapses.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class _Entry:
    expires_at: float
    handle: TimerHandle


@dataclass
class DuplicateSuppressor:
    """
    Key -> expiry map with per-key pruning timers.

    Re-marking a key replaces its timer. cleanup() cancels every timer and
    must be called on shutdown.
    """

    ttl_seconds: float = 5.0
    scheduler: Scheduler = field(default_factory=AsyncioScheduler)
    clock: Callable[[], float] = time.monotonic
    _entries: dict[Hashable, _Entry] = field(default_factory=dict, repr=False)

    def is_suppressed(self, key: Hashable) -> bool:
        """True if the key was marked within the window."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self.clock() >= entry.expires_at:
            self._expire(key, entry)
            return False
        return True

    def mark(self, key: Hashable) -> None:
        """Record a delivery for key, restarting its window."""
        existing = self._entries.pop(key, None)
        if existing is not None:
            existing.handle.cancel()

        entry = _Entry(expires_at=self.clock() + self.ttl_seconds, handle=_NullHandle())
        self._entries[key] = entry
        entry.handle = self.scheduler.call_later(
            self.ttl_seconds, lambda: self._expire(key, entry)
        )

    def cleanup(self) -> int:
        """
        Cancel all pending timers and forget every key.

        Returns:
            Number of keys removed
        """
        count = len(self._entries)
        for entry in self._entries.values():
            entry.handle.cancel()
        self._entries.clear()
        return count

    @property
    def active_count(self) -> int:
        return len(self._entries)

    def _expire(self, key: Hashable, entry: _Entry) -> None:
        # A stale timer must not remove a newer entry for the same key
        if self._entries.get(key) is entry:
            del self._entries[key]
            entry.handle.cancel()


class _NullHandle:
    def cancel(self) -> None:
        pass
