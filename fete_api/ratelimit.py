"""Per-address submission limiting.

Counters live in a store passed to the limiter. The default in-memory store is
best effort: it is not shared between processes and resets on restart.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol


@dataclass
class Window:
    count: int
    window_start: float


class RateLimitStore(Protocol):
    def get(self, address: str) -> Window | None: ...

    def put(self, address: str, window: Window) -> None: ...


class InMemoryRateLimitStore:
    def __init__(self) -> None:
        self._windows: dict[str, Window] = {}

    def get(self, address: str) -> Window | None:
        return self._windows.get(address)

    def put(self, address: str, window: Window) -> None:
        self._windows[address] = window


class RateLimiter:
    """Allow at most *max_count* hits per address in each *window* seconds."""

    def __init__(
        self,
        store: RateLimitStore,
        max_count: int = 3,
        window: float = 3600.0,
        clock=time.time,
    ) -> None:
        self.store = store
        self.max_count = max_count
        self.window = window
        self._clock = clock

    def hit(self, address: str) -> bool:
        """Count one submission; False when the address is over its limit."""
        now = self._clock()
        current = self.store.get(address)
        if current is None or now - current.window_start >= self.window:
            current = Window(count=0, window_start=now)

        if current.count >= self.max_count:
            return False

        self.store.put(address, Window(count=current.count + 1, window_start=current.window_start))
        return True
