"""
Registry of live socket streams.

The stream list and the id counter each have their own lock. Neither lock
is held across network I/O or while user callbacks run.
"""

import asyncio
import threading
from dataclasses import dataclass
from typing import Any

from ..objects.enums import StreamRole, StreamState
from ..objects.results import ApiError


@dataclass(eq=False)
class BinanceStream:
    """A socket connection and its identity. Compared by identity."""

    stream_id: int
    role: StreamRole
    url: str
    socket: Any
    state: StreamState = StreamState.CONNECTING
    task: asyncio.Task[None] | None = None

    @property
    def is_open(self) -> bool:
        return self.state is StreamState.OPEN

    @property
    def user_stream(self) -> bool:
        return self.role is StreamRole.USER_DATA


@dataclass(frozen=True)
class StreamConnection:
    """
    Outcome of a topic subscription.

    ``stream_id`` can be passed to ``unsubscribe_from_stream``.
    """

    success: bool
    stream_id: int | None = None
    error: ApiError | None = None


class StreamRegistry:
    """
    Thread-safe collection of open streams.

    Holds at most one user data stream; topic streams are unbounded.
    """

    def __init__(self) -> None:
        self._streams: list[BinanceStream] = []
        self._lock = threading.Lock()

        self._last_stream_id = 0
        self._id_lock = threading.Lock()

    def next_id(self) -> int:
        """Allocate the next stream id. Ids are never reused."""
        with self._id_lock:
            self._last_stream_id += 1
            return self._last_stream_id

    def add(self, stream: BinanceStream) -> bool:
        """
        Register a stream.

        Returns:
            False if ``stream`` is a user data stream and one is already registered.
        """
        with self._lock:
            if stream.user_stream and any(s.user_stream for s in self._streams):
                return False
            self._streams.append(stream)
            return True

    def remove(self, stream: BinanceStream) -> bool:
        """
        Unregister a stream.

        Returns:
            True only for the call that actually removed it.
        """
        with self._lock:
            try:
                self._streams.remove(stream)
            except ValueError:
                return False
            return True

    def get(self, stream_id: int) -> BinanceStream | None:
        with self._lock:
            return next((s for s in self._streams if s.stream_id == stream_id), None)

    def get_user_stream(self) -> BinanceStream | None:
        with self._lock:
            return next((s for s in self._streams if s.user_stream), None)

    def snapshot(self) -> list[BinanceStream]:
        """Copy of the registered streams, safe to iterate without the lock."""
        with self._lock:
            return list(self._streams)

    def __len__(self) -> int:
        with self._lock:
            return len(self._streams)

    def __contains__(self, stream: object) -> bool:
        with self._lock:
            return stream in self._streams
