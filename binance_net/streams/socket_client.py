"""
WebSocket subscriptions for Binance market and user data streams.

Implements the socket lifecycle:
- One connection per subscribed topic, one shared user data connection
- A receive task per socket, so streams deliver independently and in order
- Registry entries removed exactly once when a socket closes, whoever closed it
- No reconnection: a closed stream is gone, subscribe again for a new one
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import orjson
import websockets
from loguru import logger
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..infrastructure.config import Settings, get_settings
from ..objects.enums import ErrorKind, KlineInterval, StreamRole, StreamState
from ..objects.models import (
    StreamAccountInfo,
    StreamDepth,
    StreamKline,
    StreamOrderUpdate,
    StreamTrade,
    model_parser,
)
from ..objects.results import ApiError, ApiResult
from ..rest.endpoints import ACCOUNT_UPDATE_EVENT, ORDER_UPDATE_EVENT, WS_STREAMS
from .registry import BinanceStream, StreamConnection, StreamRegistry

T = TypeVar("T")

Handler = Callable[[T], Awaitable[None] | None]


async def _invoke(handler: Handler[T], payload: T) -> None:
    """Call a plain or async handler."""
    result = handler(payload)
    if inspect.isawaitable(result):
        await result


class BinanceSocketClient:
    """
    Manages WebSocket stream subscriptions to Binance.

    Handlers may be plain functions or coroutine functions. A slow handler
    only delays its own stream.

    Example:
        ```python
        async with BinanceSocketClient() as sockets:
            connection = await sockets.subscribe_to_kline_stream(
                "BTCUSDT", KlineInterval.ONE_MINUTE, handle_kline
            )
            ...
            await sockets.unsubscribe_from_stream(connection.stream_id)
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        connect: Callable[..., Awaitable[Any]] | None = None,
    ) -> None:
        """
        Initialize the socket client.

        Args:
            settings: Library settings. If None, uses default settings.
            connect: Transport factory, defaults to ``websockets.connect``.
        """
        self._settings = settings or get_settings()
        self._ws_settings = self._settings.websocket
        self._base_address = self._settings.binance.base_socket_address.rstrip("/")
        self._connect = connect or websockets.connect

        self._registry = StreamRegistry()
        self._account_callback: Handler[StreamAccountInfo] | None = None
        self._order_callback: Handler[StreamOrderUpdate] | None = None

    async def __aenter__(self) -> "BinanceSocketClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def registry(self) -> StreamRegistry:
        return self._registry

    @property
    def streams(self) -> list[BinanceStream]:
        """Currently open streams."""
        return self._registry.snapshot()

    # Topic streams
    async def subscribe_to_kline_stream(
        self,
        symbol: str,
        interval: KlineInterval | str,
        on_message: Handler[StreamKline],
    ) -> StreamConnection:
        """
        Subscribe to candlestick updates for a symbol.

        Returns:
            Success flag and the id to unsubscribe with.
        """
        stream = WS_STREAMS["kline"].format(
            symbol=symbol.lower(),
            interval=KlineInterval(interval).value,
        )
        return await self.subscribe_topic(stream, model_parser(StreamKline), on_message)

    async def subscribe_to_depth_stream(
        self, symbol: str, on_message: Handler[StreamDepth]
    ) -> StreamConnection:
        """Subscribe to order book depth updates for a symbol."""
        stream = WS_STREAMS["depth"].format(symbol=symbol.lower())
        return await self.subscribe_topic(stream, model_parser(StreamDepth), on_message)

    async def subscribe_to_trades_stream(
        self, symbol: str, on_message: Handler[StreamTrade]
    ) -> StreamConnection:
        """Subscribe to aggregated trade updates for a symbol."""
        stream = WS_STREAMS["agg_trade"].format(symbol=symbol.lower())
        return await self.subscribe_topic(stream, model_parser(StreamTrade), on_message)

    async def subscribe_topic(
        self,
        stream: str,
        parser: Callable[[str | bytes], T],
        on_message: Handler[T],
    ) -> StreamConnection:
        """
        Open a socket for a single topic.

        Every message is parsed with ``parser`` and handed to ``on_message``.
        Failing to connect is reported in the result, not raised.

        Args:
            stream: Stream path, e.g. ``btcusdt@depth``.
            parser: Turns a raw message into the topic's message type.
            on_message: Handler for parsed messages.
        """

        async def dispatch(message: str | bytes) -> None:
            await _invoke(on_message, parser(message))

        url = self._stream_url(stream)
        socket = await self._create_socket(url, StreamRole.TOPIC, dispatch)
        if socket is None:
            return StreamConnection(
                success=False,
                error=ApiError(ErrorKind.SOCKET_OPEN_FAILED, 0, f"Couldn't open socket stream to {url}"),
            )

        logger.debug(f"Started {stream} stream")
        return StreamConnection(success=True, stream_id=socket.stream_id)

    # User data stream
    async def subscribe_user_data(
        self,
        listen_key: str | None,
        on_account_update: Handler[StreamAccountInfo] | None = None,
        on_order_update: Handler[StreamOrderUpdate] | None = None,
    ) -> ApiResult[bool]:
        """
        Subscribe to account and/or order updates.

        An already open user data socket is reused; only the given handlers
        are registered (replacing previous ones).

        Args:
            listen_key: Key from ``BinanceClient.start_user_stream``.
            on_account_update: Handler for account updates.
            on_order_update: Handler for order updates.
        """
        if not listen_key:
            return ApiResult.fail(
                ErrorKind.INVALID_ARGUMENT,
                "Cannot start stream without listen key. Call start_user_stream and try again",
            )

        if on_account_update is not None:
            self._account_callback = on_account_update
        if on_order_update is not None:
            self._order_callback = on_order_update

        if self._registry.get_user_stream() is not None:
            return ApiResult.ok(True)

        stream = await self._create_socket(
            self._stream_url(listen_key), StreamRole.USER_DATA, self._on_user_message
        )
        if stream is None:
            return ApiResult.fail(ErrorKind.SOCKET_OPEN_FAILED, "Couldn't open user data stream")

        logger.debug("User stream started")
        return ApiResult.ok(True)

    async def subscribe_to_account_update_stream(
        self, listen_key: str | None, on_message: Handler[StreamAccountInfo]
    ) -> ApiResult[bool]:
        """Subscribe to account updates on the user data stream."""
        return await self.subscribe_user_data(listen_key, on_account_update=on_message)

    async def subscribe_to_order_update_stream(
        self, listen_key: str | None, on_message: Handler[StreamOrderUpdate]
    ) -> ApiResult[bool]:
        """Subscribe to order updates on the user data stream."""
        return await self.subscribe_user_data(listen_key, on_order_update=on_message)

    async def unsubscribe_from_account_update_stream(self) -> None:
        """Drop the account handler; closes the socket if no order handler remains."""
        self._account_callback = None
        if self._order_callback is None:
            await self._close_user_stream()

    async def unsubscribe_from_order_update_stream(self) -> None:
        """Drop the order handler; closes the socket if no account handler remains."""
        self._order_callback = None
        if self._account_callback is None:
            await self._close_user_stream()

    # Teardown
    async def unsubscribe_from_stream(self, stream_id: int) -> None:
        """Close the stream with ``stream_id``. Unknown ids are ignored."""
        stream = self._registry.get(stream_id)
        if stream is not None:
            await self._close_stream(stream)

    async def unsubscribe_all_streams(self) -> None:
        """Close every stream and drop both user data handlers."""
        self._account_callback = None
        self._order_callback = None
        for stream in self._registry.snapshot():
            await self._close_stream(stream)

    async def close(self) -> None:
        """Close every stream and wait for their receive tasks to finish."""
        streams = self._registry.snapshot()
        await self.unsubscribe_all_streams()

        current = asyncio.current_task()
        tasks = [s.task for s in streams if s.task is not None and s.task is not current]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Internals
    def _stream_url(self, stream: str) -> str:
        return f"{self._base_address}/{stream}"

    async def _create_socket(
        self,
        url: str,
        role: StreamRole,
        dispatch: Callable[[str | bytes], Awaitable[None]],
    ) -> BinanceStream | None:
        """
        Open a socket, register it and start its receive task.

        The stream id is consumed even if the connection fails.
        """
        stream_id = self._registry.next_id()
        try:
            socket = await self._connect(
                url,
                open_timeout=self._ws_settings.open_timeout,
                close_timeout=self._ws_settings.close_timeout,
                ping_interval=self._ws_settings.ping_interval,
                ping_timeout=self._ws_settings.ping_timeout,
            )
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Couldn't open socket stream: {e}")
            return None

        stream = BinanceStream(stream_id, role, url, socket, state=StreamState.OPEN)
        logger.debug(f"Socket opened to {url}")

        if not self._registry.add(stream):
            # A concurrent subscribe already registered the user data socket
            stream.state = StreamState.CLOSED
            await socket.close()
            return self._registry.get_user_stream()

        stream.task = asyncio.create_task(
            self._receive_loop(stream, dispatch),
            name=f"binance-stream-{stream_id}",
        )
        return stream

    async def _receive_loop(
        self,
        stream: BinanceStream,
        dispatch: Callable[[str | bytes], Awaitable[None]],
    ) -> None:
        """Deliver messages of one socket in order until it closes."""
        try:
            async for message in stream.socket:
                if not stream.is_open:
                    break

                try:
                    await dispatch(message)
                except (orjson.JSONDecodeError, ValidationError) as e:
                    logger.warning(f"Failed to parse message on stream {stream.stream_id}: {e}")
                except Exception as e:
                    logger.error(f"Handler error on stream {stream.stream_id}: {e}")
        except ConnectionClosed as e:
            logger.debug(f"Stream {stream.stream_id} connection closed: {e}")
        except (WebSocketException, OSError) as e:
            logger.error(f"Socket error {e}")
        finally:
            self._on_close(stream)

    def _on_close(self, stream: BinanceStream) -> None:
        stream.state = StreamState.CLOSED
        if self._registry.remove(stream):
            logger.debug(f"Socket {stream.stream_id} closed")

    async def _close_stream(self, stream: BinanceStream) -> None:
        self._on_close(stream)
        try:
            await stream.socket.close()
        except (WebSocketException, OSError) as e:
            logger.error(f"Error closing stream {stream.stream_id}: {e}")

    async def _close_user_stream(self) -> None:
        stream = self._registry.get_user_stream()
        if stream is not None:
            await self._close_stream(stream)

    async def _on_user_message(self, message: str | bytes) -> None:
        """Route a user data message by its event type; unknown events are dropped."""
        data = orjson.loads(message)
        event = data.get("e") if isinstance(data, dict) else None

        if event == ACCOUNT_UPDATE_EVENT:
            callback = self._account_callback
            if callback is not None:
                await _invoke(callback, StreamAccountInfo.model_validate(data))
        elif event == ORDER_UPDATE_EVENT:
            callback = self._order_callback
            if callback is not None:
                await _invoke(callback, StreamOrderUpdate.model_validate(data))
