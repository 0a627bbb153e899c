"""
Clock synchronization with the exchange server.

Signed requests carry a timestamp the server checks against its own clock,
so a drifting local clock makes them fail. The synchronizer measures the
offset once and applies it to every timestamp it hands out.
"""

import time
from collections.abc import Awaitable, Callable

from loguru import logger

from ..objects.results import ApiResult


def _wall_clock_ms() -> float:
    return time.time() * 1000


def _monotonic_ms() -> float:
    return time.perf_counter() * 1000


class ClockSynchronizer:
    """
    Tracks the offset between local and server time.

    ``offset = (server_time - local_time_at_send) - round_trip / 2``, i.e. the
    server timestamp is assumed to be taken halfway through the round trip.

    Two signed calls racing before the first sync may both trigger a sync;
    the last one to finish wins. That is harmless since either measurement
    is valid.

    Example:
        ```python
        clock = ClockSynchronizer(client.fetch_server_time_ms, auto_sync=True)
        error = await clock.ensure_synced()
        timestamp = clock.now_ms()
        ```
    """

    def __init__(
        self,
        fetch_server_time: Callable[[], Awaitable[ApiResult[int]]],
        auto_sync: bool = False,
        wall_clock: Callable[[], float] = _wall_clock_ms,
        timer: Callable[[], float] = _monotonic_ms,
    ) -> None:
        """
        Initialize the synchronizer.

        Args:
            fetch_server_time: Coroutine function returning the server time (ms).
            auto_sync: Store the measured offset and sync before signed calls.
            wall_clock: Local wall clock in milliseconds.
            timer: Monotonic timer in milliseconds, used for the round trip.
        """
        self._fetch_server_time = fetch_server_time
        self.auto_sync = auto_sync
        self._wall_clock = wall_clock
        self._timer = timer

        self._offset_ms = 0
        self._synced = False

    @property
    def offset_ms(self) -> int:
        """Current offset in milliseconds (server minus local)."""
        return self._offset_ms

    @property
    def synced(self) -> bool:
        """Whether a successful sync has been stored."""
        return self._synced

    async def sync(self) -> ApiResult[int]:
        """
        Query the server time and, with auto-sync enabled, store the offset.

        On failure the previous state is left untouched.

        Returns:
            The server time in milliseconds, or the failure of the time call.
        """
        local_at_send = self._wall_clock()
        started = self._timer()
        result = await self._fetch_server_time()
        if not result.success:
            return result

        if self.auto_sync:
            elapsed = self._timer() - started
            self._offset_ms = round((result.data - local_at_send) - elapsed / 2)
            self._synced = True
            logger.debug(f"Time offset set to {self._offset_ms}ms")

        return result

    async def ensure_synced(self) -> ApiResult[int] | None:
        """
        Sync once if auto-sync is enabled and no sync has succeeded yet.

        Returns:
            The failed sync result, or None when the caller may proceed.
        """
        if not self.auto_sync or self._synced:
            return None

        result = await self.sync()
        return None if result.success else result

    def now_ms(self) -> int:
        """Local time corrected by the offset once synced, in milliseconds."""
        local = self._wall_clock()
        if self._synced:
            return int(local + self._offset_ms)
        return int(local)
