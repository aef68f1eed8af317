from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Protocol


@dataclass
class RateLimitEntry:
    window_start: float
    count: int


class RateLimitStore(Protocol):
    def get(self, key: str) -> RateLimitEntry | None: ...

    def set(self, key: str, entry: RateLimitEntry) -> None: ...

    def delete(self, key: str) -> None: ...

    def items(self) -> Iterator[tuple[str, RateLimitEntry]]: ...

    def __len__(self) -> int: ...


class InMemoryRateLimitStore:
    """Process-local address -> entry map.

    There is no lock: concurrent hits on the same address may be off by one,
    which is fine for a soft anti-abuse check. Contents vanish on restart.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}

    def get(self, key: str) -> RateLimitEntry | None:
        return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def items(self) -> Iterator[tuple[str, RateLimitEntry]]:
        # Snapshot so callers may delete while iterating.
        return iter(list(self._entries.items()))

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class FixedWindowRateLimiter:
    """Fixed-window per-key limiter.

    The first hit for a key opens a window of `window_s` seconds; hits after
    `max_requests` inside that window are limited. Once the window has fully
    elapsed the next hit opens a fresh one.

    Note: this is per-instance. In any scaled deployment each instance
    enforces its own window.
    """

    window_s: float = 60
    max_requests: int = 3
    store: RateLimitStore = field(default_factory=InMemoryRateLimitStore)
    clock: Callable[[], float] = time.time
    sweep_every: int = 0

    def __post_init__(self) -> None:
        self._calls = 0

    def is_limited(self, key: str) -> bool:
        now = self.clock()
        self._maybe_sweep(now)

        entry = self.store.get(key)
        if entry is None or now - entry.window_start >= self.window_s:
            self.store.set(key, RateLimitEntry(window_start=now, count=1))
            return False

        entry.count += 1
        self.store.set(key, entry)
        return entry.count > self.max_requests

    def allow(self, key: str) -> bool:
        return not self.is_limited(key)

    def sweep(self, now: float | None = None) -> int:
        """Drop entries whose window has expired. Returns how many were removed."""
        ts = self.clock() if now is None else now
        removed = 0
        for key, entry in self.store.items():
            if ts - entry.window_start >= self.window_s:
                self.store.delete(key)
                removed += 1
        return removed

    def _maybe_sweep(self, now: float) -> None:
        if self.sweep_every <= 0:
            return
        self._calls += 1
        if self._calls >= self.sweep_every:
            self._calls = 0
            self.sweep(now)
