"""
In-memory response cache with an explicit eviction policy.

Entries expire after a maximum age (TTL) and the least recently used entry
is evicted once ``maxsize`` is reached. Empty results are returned but not
stored, so a transient outage is not pinned for a whole TTL.
"""
import asyncio
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple

from frcsync.core.logging import get_logger
from frcsync.core.metrics import frc_cache_lookups_total

logger = get_logger(__name__)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    try:
        return len(value) == 0
    except TypeError:
        return False


class ResponseCache:
    """
    Async memoizing cache keyed by query.

    Concurrent callers asking for the same missing key share one supplier
    call; different keys never block each other while fetching.
    """

    def __init__(
        self,
        default_ttl: float,
        maxsize: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            default_ttl: Maximum entry age in seconds when get_or_fetch gets no ttl
            maxsize: Maximum number of entries kept (LRU eviction)
            clock: Monotonic clock in seconds (injectable for tests)
        """
        self.default_ttl = default_ttl
        self.maxsize = maxsize
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[Any, float]]" = OrderedDict()
        self._lock = asyncio.Lock()
        # Fetch locks live only while some caller is fetching or waiting on that key
        self._key_locks: Dict[Hashable, asyncio.Lock] = {}
        self._lock_users: Dict[Hashable, int] = {}

    async def _get(self, key: Hashable) -> Tuple[bool, Any]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            value, expiry = entry
            if self._clock() >= expiry:
                del self._entries[key]
                return False, None
            self._entries.move_to_end(key)
            return True, value

    async def _set(self, key: Hashable, value: Any, ttl: float) -> None:
        async with self._lock:
            self._entries[key] = (value, self._clock() + ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self.maxsize:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache evicted {evicted!r}")

    async def get_or_fetch(
        self,
        key: Hashable,
        supplier: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
    ) -> Any:
        """
        Return the cached value for ``key`` or fetch, store and return it.

        Args:
            key: Cache key (e.g. ("events", 2025))
            supplier: Async callable producing the value on a miss
            ttl: Maximum age in seconds for this entry (defaults to default_ttl)

        Returns:
            The cached or freshly fetched value
        """
        found, value = await self._get(key)
        if found:
            frc_cache_lookups_total.labels(result="hit").inc()
            return value

        key_lock = self._key_locks.get(key)
        if key_lock is None:
            key_lock = self._key_locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with key_lock:
                # Another caller may have filled it while we waited
                found, value = await self._get(key)
                if found:
                    frc_cache_lookups_total.labels(result="hit").inc()
                    return value

                frc_cache_lookups_total.labels(result="miss").inc()
                value = await supplier()

                if not _is_empty(value):
                    await self._set(key, value, ttl if ttl is not None else self.default_ttl)
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._key_locks[key]

        return value

    async def invalidate(self, key: Hashable) -> bool:
        """
        Drop one entry.

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        """Drop every entry."""
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() < entry[1]
