"""
Response and stream-event models.

Wire names are kept as pydantic aliases; unknown fields are preserved so new
API fields do not break parsing. ``model_parser`` and ``list_parser`` turn a
model into the ``bytes -> T`` function the executor and socket client use.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, TypeVar

import orjson
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, model_validator

M = TypeVar("M", bound=BaseModel)


class BinanceModel(BaseModel):
    """Base for all models: accepts wire aliases and python names, keeps extras."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


def model_parser(model: type[M]) -> Callable[[bytes], M]:
    """Build a parser decoding a JSON object into ``model``."""

    def parse(body: bytes | str) -> M:
        return model.model_validate(orjson.loads(body))

    return parse


def list_parser(model: type[M]) -> Callable[[bytes], list[M]]:
    """Build a parser decoding a JSON array of ``model`` objects."""
    adapter = TypeAdapter(list[model])

    def parse(body: bytes | str) -> list[M]:
        return adapter.validate_python(orjson.loads(body))

    return parse


def _from_pair(value: Any) -> Any:
    # Order book levels arrive as ["price", "qty", ...]
    if isinstance(value, (list, tuple)):
        return {"price": value[0], "quantity": value[1]}
    return value


# Errors and plumbing


class ErrorBody(BinanceModel):
    """Error body returned with HTTP status >= 400."""

    code: int
    message: str = Field(validation_alias=AliasChoices("msg", "message"))


class ServerTime(BinanceModel):
    server_time: int = Field(alias="serverTime")

    @property
    def as_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.server_time / 1000, tz=timezone.utc)


class ListenKey(BinanceModel):
    listen_key: str = Field(alias="listenKey")


# Market data


class OrderBookEntry(BinanceModel):
    price: Decimal
    quantity: Decimal

    @model_validator(mode="before")
    @classmethod
    def _accept_pair(cls, value: Any) -> Any:
        return _from_pair(value)


class OrderBook(BinanceModel):
    last_update_id: int = Field(alias="lastUpdateId")
    bids: list[OrderBookEntry]
    asks: list[OrderBookEntry]


class AggregatedTrade(BinanceModel):
    aggregate_trade_id: int = Field(alias="a")
    price: Decimal = Field(alias="p")
    quantity: Decimal = Field(alias="q")
    first_trade_id: int = Field(alias="f")
    last_trade_id: int = Field(alias="l")
    timestamp: int = Field(alias="T")
    buyer_was_maker: bool = Field(alias="m")
    was_best_price_match: bool = Field(alias="M")


class Kline(BinanceModel):
    """Candlestick. The REST API sends these as positional arrays."""

    open_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    close_time: int
    quote_asset_volume: Decimal
    trade_count: int
    taker_buy_base_asset_volume: Decimal
    taker_buy_quote_asset_volume: Decimal

    @model_validator(mode="before")
    @classmethod
    def _accept_row(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            names = (
                "open_time", "open", "high", "low", "close", "volume", "close_time",
                "quote_asset_volume", "trade_count",
                "taker_buy_base_asset_volume", "taker_buy_quote_asset_volume",
            )
            return dict(zip(names, value))
        return value


class Price24H(BinanceModel):
    symbol: str | None = None
    price_change: Decimal = Field(alias="priceChange")
    price_change_percent: Decimal = Field(alias="priceChangePercent")
    weighted_average_price: Decimal = Field(alias="weightedAvgPrice")
    previous_close_price: Decimal = Field(alias="prevClosePrice")
    last_price: Decimal = Field(alias="lastPrice")
    bid_price: Decimal = Field(alias="bidPrice")
    ask_price: Decimal = Field(alias="askPrice")
    open_price: Decimal = Field(alias="openPrice")
    high_price: Decimal = Field(alias="highPrice")
    low_price: Decimal = Field(alias="lowPrice")
    volume: Decimal
    open_time: int = Field(alias="openTime")
    close_time: int = Field(alias="closeTime")
    trade_count: int = Field(alias="count")


class Price(BinanceModel):
    symbol: str
    price: Decimal


class BookPrice(BinanceModel):
    symbol: str
    bid_price: Decimal = Field(alias="bidPrice")
    bid_quantity: Decimal = Field(alias="bidQty")
    ask_price: Decimal = Field(alias="askPrice")
    ask_quantity: Decimal = Field(alias="askQty")


# Account and orders


class Order(BinanceModel):
    symbol: str
    order_id: int = Field(alias="orderId")
    client_order_id: str = Field(alias="clientOrderId")
    price: Decimal
    original_quantity: Decimal = Field(alias="origQty")
    executed_quantity: Decimal = Field(alias="executedQty")
    status: str
    time_in_force: str = Field(alias="timeInForce")
    type: str
    side: str
    stop_price: Decimal | None = Field(default=None, alias="stopPrice")
    iceberg_quantity: Decimal | None = Field(default=None, alias="icebergQty")
    time: int | None = None


class PlacedOrder(BinanceModel):
    symbol: str
    order_id: int | None = Field(default=None, alias="orderId")
    client_order_id: str | None = Field(default=None, alias="clientOrderId")
    original_client_order_id: str | None = Field(default=None, alias="origClientOrderId")
    transact_time: int | None = Field(default=None, alias="transactTime")


class Balance(BinanceModel):
    asset: str
    free: Decimal
    locked: Decimal

    @property
    def total(self) -> Decimal:
        return self.free + self.locked


class AccountInfo(BinanceModel):
    maker_commission: int = Field(alias="makerCommission")
    taker_commission: int = Field(alias="takerCommission")
    buyer_commission: int = Field(alias="buyerCommission")
    seller_commission: int = Field(alias="sellerCommission")
    can_trade: bool = Field(alias="canTrade")
    can_withdraw: bool = Field(alias="canWithdraw")
    can_deposit: bool = Field(alias="canDeposit")
    balances: list[Balance] = Field(default_factory=list)


class Trade(BinanceModel):
    id: int
    order_id: int | None = Field(default=None, alias="orderId")
    price: Decimal
    quantity: Decimal = Field(alias="qty")
    commission: Decimal
    commission_asset: str = Field(alias="commissionAsset")
    time: int
    is_buyer: bool = Field(alias="isBuyer")
    is_maker: bool = Field(alias="isMaker")
    is_best_match: bool = Field(alias="isBestMatch")


# Stream events


class StreamKlineData(BinanceModel):
    start_time: int = Field(alias="t")
    end_time: int = Field(alias="T")
    symbol: str = Field(alias="s")
    interval: str = Field(alias="i")
    first_trade_id: int = Field(alias="f")
    last_trade_id: int = Field(alias="L")
    open: Decimal = Field(alias="o")
    close: Decimal = Field(alias="c")
    high: Decimal = Field(alias="h")
    low: Decimal = Field(alias="l")
    volume: Decimal = Field(alias="v")
    trade_count: int = Field(alias="n")
    final: bool = Field(alias="x")
    quote_asset_volume: Decimal = Field(alias="q")


class StreamKline(BinanceModel):
    event: str = Field(alias="e")
    event_time: int = Field(alias="E")
    symbol: str = Field(alias="s")
    data: StreamKlineData = Field(alias="k")


class StreamDepth(BinanceModel):
    event: str = Field(alias="e")
    event_time: int = Field(alias="E")
    symbol: str = Field(alias="s")
    first_update_id: int = Field(alias="U")
    final_update_id: int = Field(alias="u")
    bids: list[OrderBookEntry] = Field(alias="b")
    asks: list[OrderBookEntry] = Field(alias="a")


class StreamTrade(BinanceModel):
    event: str = Field(alias="e")
    event_time: int = Field(alias="E")
    symbol: str = Field(alias="s")
    aggregated_trade_id: int = Field(alias="a")
    price: Decimal = Field(alias="p")
    quantity: Decimal = Field(alias="q")
    first_trade_id: int = Field(alias="f")
    last_trade_id: int = Field(alias="l")
    trade_time: int = Field(alias="T")
    buyer_is_maker: bool = Field(alias="m")


class StreamBalance(BinanceModel):
    asset: str = Field(alias="a")
    free: Decimal = Field(alias="f")
    locked: Decimal = Field(alias="l")


class StreamAccountInfo(BinanceModel):
    event: str = Field(alias="e")
    event_time: int = Field(alias="E")
    maker_commission: int | None = Field(default=None, alias="m")
    taker_commission: int | None = Field(default=None, alias="t")
    can_trade: bool | None = Field(default=None, alias="T")
    can_withdraw: bool | None = Field(default=None, alias="W")
    can_deposit: bool | None = Field(default=None, alias="D")
    balances: list[StreamBalance] = Field(default_factory=list, alias="B")


class StreamOrderUpdate(BinanceModel):
    event: str = Field(alias="e")
    event_time: int = Field(alias="E")
    symbol: str = Field(alias="s")
    client_order_id: str = Field(alias="c")
    side: str = Field(alias="S")
    type: str = Field(alias="o")
    time_in_force: str = Field(alias="f")
    quantity: Decimal = Field(alias="q")
    price: Decimal = Field(alias="p")
    execution_type: str = Field(alias="x")
    status: str = Field(alias="X")
    reject_reason: str | None = Field(default=None, alias="r")
    order_id: int = Field(alias="i")
    last_filled_quantity: Decimal | None = Field(default=None, alias="l")
    accumulated_quantity: Decimal | None = Field(default=None, alias="z")
    last_price: Decimal | None = Field(default=None, alias="L")
    commission: Decimal | None = Field(default=None, alias="n")
    commission_asset: str | None = Field(default=None, alias="N")
    time: int = Field(alias="T")
    trade_id: int | None = Field(default=None, alias="t")
