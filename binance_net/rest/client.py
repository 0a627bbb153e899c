"""
Binance REST API Client.

Provides async interface to the Binance REST API for:
- Market data
- Account information
- Order placement, query and cancellation
- User data stream listen keys

Every method returns an ``ApiResult``; nothing here raises for failures the
exchange or the network can cause.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, TypeVar

import aiohttp
import orjson
from loguru import logger

from ..infrastructure.clock import ClockSynchronizer
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.signing import Credentials
from ..objects.enums import ErrorKind, KlineInterval, OrderSide, OrderType, TimeInForce
from ..objects.models import (
    AccountInfo,
    AggregatedTrade,
    BookPrice,
    Kline,
    ListenKey,
    Order,
    OrderBook,
    PlacedOrder,
    Price,
    Price24H,
    ServerTime,
    Trade,
    list_parser,
    model_parser,
)
from ..objects.results import ApiResult
from .endpoints import (
    DELETE,
    ENDPOINTS,
    GET,
    POST,
    PUBLIC_VERSION,
    PUT,
    SIGNED_VERSION,
    USER_DATA_STREAM_VERSION,
)
from .executor import NOT_AUTHENTICATED_MESSAGE, RequestExecutor, RequestSpec

T = TypeVar("T")


def _to_unix_ms(value: datetime | int | None) -> int | None:
    if value is None or isinstance(value, int):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class BinanceClient:
    """
    Async Binance REST API client.

    Features:
    - HMAC-SHA256 request signing
    - Optional server clock synchronization for signed calls
    - Uniform result envelope for every call

    Example:
        ```python
        async with BinanceClient(api_key="key", api_secret="secret") as client:
            prices = await client.get_all_prices()
            if prices.success:
                print(prices.data)

            order = await client.place_order(
                symbol="BTCUSDT",
                side=OrderSide.BUY,
                order_type=OrderType.LIMIT,
                quantity=0.01,
                price=45000,
                time_in_force=TimeInForce.GTC,
            )
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize Binance client.

        Args:
            settings: Library settings. If None, uses default settings.
            api_key: API key, overrides the configured one.
            api_secret: API secret, overrides the configured one.
            session: Externally owned aiohttp session.
        """
        self._settings = settings or get_settings()
        self._binance = self._settings.binance

        self._credentials: Credentials | None = None
        if api_key is not None or api_secret is not None:
            self.set_api_credentials(api_key or "", api_secret or "")
        elif self._binance.has_credentials:
            self._credentials = Credentials(
                self._binance.api_key.get_secret_value(),
                self._binance.api_secret.get_secret_value(),
            )
        elif self._binance.api_key or self._binance.api_secret:
            logger.warning(
                "Only one of api key / api secret configured, private endpoints are unavailable"
            )

        self._executor = RequestExecutor(
            self._binance.base_address,
            timeout=self._binance.request_timeout,
            session=session,
        )
        self._clock = ClockSynchronizer(
            self._fetch_server_time_ms,
            auto_sync=self._binance.auto_timestamp,
        )
        self._listen_key: str | None = None

    async def __aenter__(self) -> "BinanceClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def initialize(self) -> None:
        """Initialize HTTP session."""
        await self._executor.initialize()
        logger.info(f"Binance client initialized. Base address: {self._binance.base_address}")

    async def close(self) -> None:
        """Close HTTP session."""
        await self._executor.close()

    def run_sync(self, operation: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Run one of this client's coroutine methods to completion.

        Blocks the calling thread; must not be called from a running event
        loop. The HTTP session is closed afterwards so the next call gets a
        session bound to its own loop.

        Example:
            ```python
            result = client.run_sync(client.get_account_info)
            ```
        """

        async def runner() -> T:
            try:
                return await operation(*args, **kwargs)
            finally:
                await self.close()

        return asyncio.run(runner())

    # Configuration
    def set_api_credentials(self, api_key: str, api_secret: str) -> None:
        """
        Set the API credentials, replacing any previous pair.

        Raises:
            ValueError: If the key or the secret is empty.
        """
        self._credentials = Credentials(api_key, api_secret)

    def clear_api_credentials(self) -> None:
        """Forget the API credentials."""
        self._credentials = None

    @property
    def has_credentials(self) -> bool:
        return self._credentials is not None

    @property
    def auto_timestamp(self) -> bool:
        """Whether signed calls sync the clock first."""
        return self._clock.auto_sync

    @auto_timestamp.setter
    def auto_timestamp(self, value: bool) -> None:
        self._clock.auto_sync = value

    @property
    def clock(self) -> ClockSynchronizer:
        return self._clock

    @property
    def listen_key(self) -> str | None:
        """Listen key of the user data stream started by this client."""
        return self._listen_key

    # Plumbing
    def _not_authenticated(self) -> ApiResult[Any]:
        return ApiResult.fail(ErrorKind.NOT_AUTHENTICATED, NOT_AUTHENTICATED_MESSAGE)

    async def _public(
        self, endpoint: str, parser: Callable[[bytes], T], params: dict[str, Any] | None = None
    ) -> ApiResult[T]:
        spec = RequestSpec(ENDPOINTS[endpoint], PUBLIC_VERSION, params or {})
        return await self._executor.execute(spec, parser)

    async def _signed(
        self,
        endpoint: str,
        parser: Callable[[bytes], T],
        params: dict[str, Any] | None = None,
        method: str = GET,
    ) -> ApiResult[T]:
        """Sync the clock if needed, timestamp, sign and execute."""
        if self._credentials is None:
            return self._not_authenticated()

        sync_failure = await self._clock.ensure_synced()
        if sync_failure is not None:
            return ApiResult.from_error(sync_failure.error)

        params = dict(params or {})
        params["timestamp"] = self._clock.now_ms()
        spec = RequestSpec(ENDPOINTS[endpoint], SIGNED_VERSION, params, method, signed=True)
        return await self._executor.execute(spec, parser, self._credentials)

    async def _user_stream(
        self,
        parser: Callable[[bytes], T],
        params: dict[str, Any] | None = None,
        method: str = POST,
    ) -> ApiResult[T]:
        if self._credentials is None:
            return self._not_authenticated()

        spec = RequestSpec(
            ENDPOINTS["user_data_stream"],
            USER_DATA_STREAM_VERSION,
            params or {},
            method,
            keyed=True,
        )
        return await self._executor.execute(spec, parser, self._credentials)

    async def _fetch_server_time_ms(self) -> ApiResult[int]:
        result = await self._public("time", model_parser(ServerTime))
        return result.map(lambda data: data.server_time)

    # Public endpoints
    async def ping(self) -> ApiResult[bool]:
        """Ping the API. Data is True when the server answered."""
        result = await self._public("ping", orjson.loads)
        return result.map(lambda data: data is not None)

    async def get_server_time(self) -> ApiResult[datetime]:
        """
        Get the server time.

        With auto timestamp enabled this also measures and stores the
        offset between local and server time used by signed calls.
        """
        result = await self._clock.sync()
        return result.map(lambda ms: datetime.fromtimestamp(ms / 1000, tz=timezone.utc))

    async def get_order_book(self, symbol: str, limit: int | None = None) -> ApiResult[OrderBook]:
        """Get the order book for a symbol."""
        params = {"symbol": symbol, "limit": limit}
        return await self._public("order_book", model_parser(OrderBook), params)

    async def get_aggregated_trades(
        self,
        symbol: str,
        from_id: int | None = None,
        start_time: datetime | int | None = None,
        end_time: datetime | int | None = None,
        limit: int | None = None,
    ) -> ApiResult[list[AggregatedTrade]]:
        """
        Get compressed, aggregate trades.

        Trades that fill at the same time, from the same order, with the same
        price have their quantity aggregated.
        """
        params = {
            "symbol": symbol,
            "fromId": from_id,
            "startTime": _to_unix_ms(start_time),
            "endTime": _to_unix_ms(end_time),
            "limit": limit,
        }
        return await self._public("aggregated_trades", list_parser(AggregatedTrade), params)

    async def get_klines(
        self,
        symbol: str,
        interval: KlineInterval | str,
        start_time: datetime | int | None = None,
        end_time: datetime | int | None = None,
        limit: int | None = None,
    ) -> ApiResult[list[Kline]]:
        """Get candlestick data."""
        params = {
            "symbol": symbol,
            "interval": interval,
            "startTime": _to_unix_ms(start_time),
            "endTime": _to_unix_ms(end_time),
            "limit": limit,
        }
        return await self._public("klines", list_parser(Kline), params)

    async def get_24h_prices(self, symbol: str) -> ApiResult[Price24H]:
        """Get 24 hour price change statistics for a symbol."""
        return await self._public("ticker_24h", model_parser(Price24H), {"symbol": symbol})

    async def get_all_prices(self) -> ApiResult[list[Price]]:
        """Get the latest price of every symbol."""
        return await self._public("all_prices", list_parser(Price))

    async def get_all_book_prices(self) -> ApiResult[list[BookPrice]]:
        """Get the best bid/ask of every symbol."""
        return await self._public("all_book_prices", list_parser(BookPrice))

    # Signed endpoints
    async def get_open_orders(
        self, symbol: str, receive_window: int | None = None
    ) -> ApiResult[list[Order]]:
        """Get all open orders for a symbol."""
        params = {"symbol": symbol, "recvWindow": receive_window}
        return await self._signed("open_orders", list_parser(Order), params)

    async def get_all_orders(
        self,
        symbol: str,
        order_id: int | None = None,
        limit: int | None = None,
        receive_window: int | None = None,
    ) -> ApiResult[list[Order]]:
        """Get all orders (open, cancelled or filled) for a symbol."""
        params = {
            "symbol": symbol,
            "orderId": order_id,
            "limit": limit,
            "recvWindow": receive_window,
        }
        return await self._signed("all_orders", list_parser(Order), params)

    def _order_params(
        self,
        symbol: str,
        side: OrderSide | str,
        order_type: OrderType | str,
        quantity: Decimal | float | str,
        price: Decimal | float | str | None,
        time_in_force: TimeInForce | str | None,
        new_client_order_id: str | None,
        stop_price: Decimal | float | str | None,
        iceberg_quantity: Decimal | float | str | None,
        receive_window: int | None,
    ) -> dict[str, Any]:
        return {
            "symbol": symbol,
            "side": side,
            "type": order_type,
            "timeInForce": time_in_force,
            "quantity": quantity,
            "price": price,
            "newClientOrderId": new_client_order_id,
            "stopPrice": stop_price,
            "icebergQty": iceberg_quantity,
            "recvWindow": receive_window,
        }

    async def place_order(
        self,
        symbol: str,
        side: OrderSide | str,
        order_type: OrderType | str,
        quantity: Decimal | float | str,
        price: Decimal | float | str | None = None,
        time_in_force: TimeInForce | str | None = None,
        new_client_order_id: str | None = None,
        stop_price: Decimal | float | str | None = None,
        iceberg_quantity: Decimal | float | str | None = None,
        receive_window: int | None = None,
    ) -> ApiResult[PlacedOrder]:
        """
        Place an order.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT").
            side: BUY or SELL.
            order_type: LIMIT, MARKET, STOP_LOSS_LIMIT, etc.
            quantity: Order quantity.
            price: Limit price.
            time_in_force: GTC, IOC or FOK (limit orders).
            new_client_order_id: Client-chosen id for the order.
            stop_price: Trigger price for stop orders.
            iceberg_quantity: Visible quantity for iceberg orders.
            receive_window: Milliseconds the request stays valid.

        Returns:
            The placed order.
        """
        params = self._order_params(
            symbol, side, order_type, quantity, price, time_in_force,
            new_client_order_id, stop_price, iceberg_quantity, receive_window,
        )
        logger.info(f"Placing order: {symbol} {side} {order_type} {quantity}@{price}")
        return await self._signed("order", model_parser(PlacedOrder), params, POST)

    async def place_test_order(
        self,
        symbol: str,
        side: OrderSide | str,
        order_type: OrderType | str,
        quantity: Decimal | float | str,
        price: Decimal | float | str | None = None,
        time_in_force: TimeInForce | str | None = None,
        new_client_order_id: str | None = None,
        stop_price: Decimal | float | str | None = None,
        iceberg_quantity: Decimal | float | str | None = None,
        receive_window: int | None = None,
    ) -> ApiResult[dict[str, Any]]:
        """Validate an order with the matching engine without placing it."""
        params = self._order_params(
            symbol, side, order_type, quantity, price, time_in_force,
            new_client_order_id, stop_price, iceberg_quantity, receive_window,
        )
        return await self._signed("test_order", orjson.loads, params, POST)

    async def query_order(
        self,
        symbol: str,
        order_id: int | None = None,
        orig_client_order_id: str | None = None,
        receive_window: int | None = None,
    ) -> ApiResult[Order]:
        """Get the status of an order by exchange id or client order id."""
        if self._credentials is None:
            return self._not_authenticated()
        if order_id is None and orig_client_order_id is None:
            return ApiResult.fail(
                ErrorKind.INVALID_ARGUMENT, "Either orderId or origClientOrderId is required"
            )

        params = {
            "symbol": symbol,
            "orderId": order_id,
            "origClientOrderId": orig_client_order_id,
            "recvWindow": receive_window,
        }
        return await self._signed("order", model_parser(Order), params)

    async def cancel_order(
        self,
        symbol: str,
        order_id: int | None = None,
        orig_client_order_id: str | None = None,
        new_client_order_id: str | None = None,
        receive_window: int | None = None,
    ) -> ApiResult[PlacedOrder]:
        """
        Cancel an order.

        Args:
            symbol: Trading pair.
            order_id: Exchange order id.
            orig_client_order_id: Client order id the order was placed with.
            new_client_order_id: Client id to give the cancellation.
            receive_window: Milliseconds the request stays valid.
        """
        if self._credentials is None:
            return self._not_authenticated()
        if order_id is None and orig_client_order_id is None:
            return ApiResult.fail(
                ErrorKind.INVALID_ARGUMENT, "Either orderId or origClientOrderId is required"
            )

        params = {
            "symbol": symbol,
            "orderId": order_id,
            "origClientOrderId": orig_client_order_id,
            "newClientOrderId": new_client_order_id,
            "recvWindow": receive_window,
        }
        return await self._signed("order", model_parser(PlacedOrder), params, DELETE)

    async def get_account_info(self, receive_window: int | None = None) -> ApiResult[AccountInfo]:
        """Get account information including balances."""
        return await self._signed(
            "account", model_parser(AccountInfo), {"recvWindow": receive_window}
        )

    async def get_my_trades(
        self,
        symbol: str,
        limit: int | None = None,
        from_id: int | None = None,
        receive_window: int | None = None,
    ) -> ApiResult[list[Trade]]:
        """Get trades of this account for a symbol."""
        params = {
            "symbol": symbol,
            "limit": limit,
            "fromId": from_id,
            "recvWindow": receive_window,
        }
        return await self._signed("my_trades", list_parser(Trade), params)

    # User data stream
    async def start_user_stream(self) -> ApiResult[str]:
        """
        Start a user data stream.

        The listen key is stored and used by the keep-alive and stop calls.
        It has to be kept alive with ``keep_alive_user_stream`` periodically.
        """
        result = await self._user_stream(model_parser(ListenKey), method=POST)
        if result.success:
            self._listen_key = result.data.listen_key
            logger.debug("User data stream started")
        return result.map(lambda data: data.listen_key)

    async def keep_alive_user_stream(self, listen_key: str | None = None) -> ApiResult[bool]:
        """Extend the validity of the user data stream listen key."""
        if self._credentials is None:
            return self._not_authenticated()

        listen_key = listen_key or self._listen_key
        if listen_key is None:
            return ApiResult.fail(
                ErrorKind.INVALID_ARGUMENT, "No user stream open, can't keep alive"
            )

        result = await self._user_stream(orjson.loads, {"listenKey": listen_key}, PUT)
        return result.map(lambda _: True)

    async def stop_user_stream(self, listen_key: str | None = None) -> ApiResult[bool]:
        """Close the user data stream and forget the listen key."""
        if self._credentials is None:
            return self._not_authenticated()

        listen_key = listen_key or self._listen_key
        if listen_key is None:
            return ApiResult.fail(ErrorKind.INVALID_ARGUMENT, "No user stream open, can't close")

        result = await self._user_stream(orjson.loads, {"listenKey": listen_key}, DELETE)
        if result.success and listen_key == self._listen_key:
            self._listen_key = None
        return result.map(lambda _: True)
