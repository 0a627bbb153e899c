"""
Shared fixtures and fakes.

The fakes stand in for the network: an aiohttp-like session that answers
from canned routes, a websocket transport fed through a queue and a clock
the tests move by hand.
"""

import asyncio
from types import SimpleNamespace
from typing import Any

import orjson
import pytest
from yarl import URL

from binance_net.infrastructure.config import BinanceSettings, Settings, WebSocketSettings


class FakeResponse:
    """aiohttp response stand-in usable as an async context manager."""

    def __init__(self, status: int = 200, body: Any = b"{}", reason: str = "OK") -> None:
        self.status = status
        self.reason = reason
        if isinstance(body, (dict, list)):
            body = orjson.dumps(body)
        elif isinstance(body, str):
            body = body.encode()
        self._body = body

    async def read(self) -> bytes:
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeSession:
    """
    aiohttp session stand-in.

    Routes match on the end of the URL path; the last queued response of a
    route is reused for further calls.
    """

    def __init__(self) -> None:
        self._routes: dict[str, list[FakeResponse]] = {}
        self.requests: list[SimpleNamespace] = []
        self.error: Exception | None = None
        self.closed = False

    def add(self, path: str, body: Any = b"{}", status: int = 200, reason: str = "OK") -> None:
        self._routes.setdefault(path, []).append(FakeResponse(status, body, reason))

    def request(self, method: str, url: Any, headers: dict[str, str] | None = None, **kwargs: Any):
        url = str(url)
        self.requests.append(SimpleNamespace(method=method, url=url, headers=headers or {}))
        if self.error is not None:
            raise self.error

        path = URL(url).path
        for route, responses in self._routes.items():
            if path.endswith(route) and responses:
                return responses.pop(0) if len(responses) > 1 else responses[0]
        return FakeResponse(404, {"code": -1, "msg": "Not found"}, "Not Found")

    def urls(self, path: str) -> list[str]:
        return [r.url for r in self.requests if URL(r.url).path.endswith(path)]

    async def close(self) -> None:
        self.closed = True


_CLOSE = object()


class FakeSocket:
    """Websocket transport stand-in fed through a queue."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.closed = False
        self.close_calls = 0
        self._queue: asyncio.Queue[Any] = asyncio.Queue()

    def push(self, message: Any) -> None:
        if isinstance(message, (dict, list)):
            message = orjson.dumps(message).decode()
        self._queue.put_nowait(message)

    def remote_close(self) -> None:
        self.closed = True
        self._queue.put_nowait(_CLOSE)

    async def close(self) -> None:
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_CLOSE)

    def __aiter__(self) -> "FakeSocket":
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Replacement for ``websockets.connect`` recording every socket it opens."""

    def __init__(self) -> None:
        self.sockets: list[FakeSocket] = []
        self.fail = False
        self.kwargs: list[dict[str, Any]] = []

    async def __call__(self, url: str, **kwargs: Any) -> FakeSocket:
        self.kwargs.append(kwargs)
        if self.fail:
            raise OSError("Connection refused")
        socket = FakeSocket(url)
        self.sockets.append(socket)
        return socket


class FakeClock:
    """Wall clock and monotonic timer in milliseconds, moved by hand."""

    def __init__(self, wall_ms: float = 1_000_000.0) -> None:
        self.wall_ms = wall_ms
        self.mono_ms = 0.0

    def wall_clock(self) -> float:
        return self.wall_ms

    def timer(self) -> float:
        return self.mono_ms

    def advance(self, ms: float) -> None:
        self.wall_ms += ms
        self.mono_ms += ms


def make_settings(
    api_key: str | None = "api-key",
    api_secret: str | None = "api-secret",
    auto_timestamp: bool = False,
    base_address: str = "https://x/api",
) -> Settings:
    return Settings(
        binance=BinanceSettings(
            api_key=api_key,
            api_secret=api_secret,
            base_address=base_address,
            base_socket_address="wss://stream.test/ws",
            auto_timestamp=auto_timestamp,
        ),
        websocket=WebSocketSettings(),
    )


@pytest.fixture
def settings() -> Settings:
    """Settings with credentials and a test base address."""
    return make_settings()


@pytest.fixture
def anonymous_settings() -> Settings:
    """Settings without credentials."""
    return make_settings(api_key=None, api_secret=None)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0)

    await asyncio.wait_for(poll(), timeout)
