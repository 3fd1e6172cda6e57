"""In-memory TTL cache with negative caching and in-flight de-duplication."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any


class TTLCache:
    """Expiring key/value store for lookups such as ENS resolution.

    Found values live for ``positive_ttl`` seconds, ``None`` results for
    ``negative_ttl`` seconds. Entries are only evicted on expiry. While a
    fetch for a key is in flight, other callers await the same task
    instead of starting another.
    """

    POSITIVE_TTL = 300.0
    NEGATIVE_TTL = 120.0

    def __init__(
        self,
        positive_ttl: float = POSITIVE_TTL,
        negative_ttl: float = NEGATIVE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.positive_ttl = positive_ttl
        self.negative_ttl = negative_ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._pending: dict[str, asyncio.Task] = {}

    @staticmethod
    def _key(key: str) -> str:
        return str(key).strip().lower()

    def __contains__(self, key: str) -> bool:
        k = self._key(key)
        entry = self._entries.get(k)
        if entry is None:
            return False
        if entry[1] <= self._clock():
            del self._entries[k]
            return False
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        """Cached value, or ``default`` when missing or expired."""
        if key not in self:
            return default
        return self._entries[self._key(key)][0]

    def set(self, key: str, value: Any) -> None:
        ttl = self.negative_ttl if value is None else self.positive_ttl
        self._entries[self._key(key)] = (value, self._clock() + ttl)

    def has_pending(self, key: str) -> bool:
        return self._key(key) in self._pending

    async def await_pending(self, key: str) -> Any:
        """Wait for the in-flight fetch of ``key``; None if there is none."""
        task = self._pending.get(self._key(key))
        if task is None:
            return None
        return await task

    async def get_or_fetch(self, key: str, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value or run ``fetcher`` once and cache its result."""
        if key in self:
            return self.get(key)
        if self.has_pending(key):
            return await self.await_pending(key)

        k = self._key(key)
        task = asyncio.ensure_future(fetcher())
        self._pending[k] = task
        try:
            value = await task
        finally:
            self._pending.pop(k, None)
        self.set(key, value)
        return value
