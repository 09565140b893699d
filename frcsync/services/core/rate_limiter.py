"""
Per-endpoint rate limiting for the FRC Events API.

The API allows a fixed number of requests per minute. Rather than a global
token bucket, calls are spaced per *logical* endpoint ("events",
"team-events-254", "rankings-CASJ", ...) so unrelated queries never queue
behind each other.

The limiter is shared by every sync path (scheduled runs, manual triggers,
HTTP lookups), so both the last-call map and the per-key waits are guarded.
Keys come partly from caller input (event codes, team numbers), so a key is
forgotten once its interval has elapsed and nobody holds its lock.
"""
import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional

from frcsync.core.config import DEFAULT_REQUESTS_PER_MINUTE
from frcsync.core.exceptions import SyncCancelledError
from frcsync.core.logging import get_logger
from frcsync.core.metrics import frc_rate_limit_wait_seconds

logger = get_logger(__name__)


class EndpointRateLimiter:
    """
    Enforces a minimum spacing between calls to the same endpoint key.

    ``min_interval = 60s / requests_per_minute``. The first acquire of a key
    returns immediately; later ones wait out the remainder of the interval.

    Waits are interruptible: ``cancel_waits()`` wakes every waiter with
    ``SyncCancelledError`` until ``resume()`` is called.
    """

    def __init__(
        self,
        requests_per_minute: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the limiter.

        Args:
            requests_per_minute: Allowed rate; unset or non-positive uses 20
            clock: Monotonic clock in seconds (injectable for tests)
            sleep: Async sleep function (injectable for tests)
        """
        if not requests_per_minute or requests_per_minute <= 0:
            requests_per_minute = DEFAULT_REQUESTS_PER_MINUTE

        self.requests_per_minute = requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._last_call: Dict[str, float] = {}
        self._key_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._stop_event = asyncio.Event()

    @property
    def min_interval(self) -> float:
        """Minimum seconds between two calls with the same key."""
        return 60.0 / self.requests_per_minute

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            lock = self._key_locks[key] = asyncio.Lock()
        return lock

    async def acquire(self, endpoint_key: str) -> float:
        """
        Wait until ``endpoint_key`` may be called again.

        Args:
            endpoint_key: Logical endpoint, e.g. "events" or "rankings-CASJ"

        Returns:
            Seconds spent waiting

        Raises:
            SyncCancelledError: If cancel_waits() was called before or during the wait
        """
        lock = self._lock_for(endpoint_key)
        self._lock_users[endpoint_key] = self._lock_users.get(endpoint_key, 0) + 1
        try:
            async with lock:
                if self._stop_event.is_set():
                    raise SyncCancelledError(f"Rate limiter stopped before acquiring {endpoint_key}")

                waited = 0.0
                last = self._last_call.get(endpoint_key)
                if last is not None:
                    remaining = self.min_interval - (self._clock() - last)
                    if remaining > 0:
                        logger.debug(f"Rate limiting {endpoint_key}: waiting {remaining:.2f}s")
                        await self._wait(remaining, endpoint_key)
                        waited = remaining

                self._last_call[endpoint_key] = self._clock()
        finally:
            self._lock_users[endpoint_key] -= 1
            if not self._lock_users[endpoint_key]:
                del self._lock_users[endpoint_key]
            self._prune()

        frc_rate_limit_wait_seconds.observe(waited)
        return waited

    def _prune(self) -> None:
        """Forget keys nobody is using whose interval has already elapsed."""
        now = self._clock()
        for key in list(self._key_locks):
            if key in self._lock_users:
                continue
            last = self._last_call.get(key)
            if last is None or now - last >= self.min_interval:
                self._last_call.pop(key, None)
                del self._key_locks[key]

    async def _wait(self, delay: float, endpoint_key: str) -> None:
        """Sleep for ``delay`` unless the stop event fires first."""
        sleeper = asyncio.ensure_future(self._sleep(delay))
        stopper = asyncio.ensure_future(self._stop_event.wait())
        try:
            done, _ = await asyncio.wait({sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, stopper):
                if not task.done():
                    task.cancel()

        if stopper in done:
            logger.info(
                f"Rate limiter wait interrupted for {endpoint_key}",
                extra={"event": "sync_cancelled", "endpoint_key": endpoint_key}
            )
            raise SyncCancelledError(f"Rate limiter wait interrupted for {endpoint_key}")

    def cancel_waits(self) -> None:
        """Interrupt current waits and refuse new acquires until resume()."""
        self._stop_event.set()

    def resume(self) -> None:
        """Allow acquires again after cancel_waits()."""
        self._stop_event.clear()

    @property
    def is_stopped(self) -> bool:
        return self._stop_event.is_set()
