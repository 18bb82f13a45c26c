"""Time-bounded cache of permission lookups, shared across requests."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

PermissionLoader = Callable[[Hashable], Awaitable[list[str]]]


@dataclass
class CacheEntry:
    value: list[str] | None = None
    timestamp: float = 0.0
    inflight: asyncio.Future | None = None


class PermissionCache:
    """Per-key cached loads with a TTL and single-flight deduplication.

    Concurrent ``get()`` calls for the same key while a load is running await
    that one load. A failed load is not cached and its error propagates to
    every waiter.
    """

    def __init__(
        self,
        loader: PermissionLoader,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.loader = loader
        self.ttl = ttl
        self.clock = clock
        self.loads = 0
        self._entries: dict[Hashable, CacheEntry] = {}

    def entry(self, key: Hashable) -> CacheEntry:
        if key not in self._entries:
            self._entries[key] = CacheEntry()
        return self._entries[key]

    def _fresh(self, entry: CacheEntry) -> bool:
        return entry.value is not None and self.clock() - entry.timestamp < self.ttl

    async def get(self, key: Hashable) -> list[str]:
        entry = self.entry(key)
        if self._fresh(entry):
            return entry.value
        if entry.inflight is not None:
            return await asyncio.shield(entry.inflight)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        entry.inflight = future
        self.loads += 1
        try:
            value = sorted(set(filter(None, await self.loader(key))))
        except Exception as e:
            logger.warning("Permission load failed for %r: %s", key, e)
            future.set_exception(e)
            # Mark retrieved so an unawaited future does not log a warning
            future.exception()
            raise
        else:
            entry.value = value
            entry.timestamp = self.clock()
            future.set_result(value)
            return value
        finally:
            entry.inflight = None

    def invalidate(self, key: Hashable | None = None) -> None:
        """Forget one key, or everything when ``key`` is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
