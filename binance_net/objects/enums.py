"""Enumerations shared by the REST and WebSocket clients."""

from enum import Enum


class KlineInterval(str, Enum):
    """Candlestick intervals as the API spells them."""

    ONE_MINUTE = "1m"
    THREE_MINUTES = "3m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"
    TWO_HOURS = "2h"
    FOUR_HOURS = "4h"
    SIX_HOURS = "6h"
    EIGHT_HOURS = "8h"
    TWELVE_HOURS = "12h"
    ONE_DAY = "1d"
    THREE_DAYS = "3d"
    ONE_WEEK = "1w"
    ONE_MONTH = "1M"


class OrderSide(str, Enum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    """Order type."""

    LIMIT = "LIMIT"
    MARKET = "MARKET"
    STOP_LOSS = "STOP_LOSS"
    STOP_LOSS_LIMIT = "STOP_LOSS_LIMIT"
    TAKE_PROFIT = "TAKE_PROFIT"
    TAKE_PROFIT_LIMIT = "TAKE_PROFIT_LIMIT"
    LIMIT_MAKER = "LIMIT_MAKER"


class TimeInForce(str, Enum):
    """Time in force."""

    GTC = "GTC"
    IOC = "IOC"
    FOK = "FOK"


class ErrorKind(Enum):
    """Categories of failures reported through ``ApiResult``."""

    NOT_AUTHENTICATED = "not_authenticated"
    INVALID_ARGUMENT = "invalid_argument"
    SERVER_REJECTED = "server_rejected"
    MALFORMED_RESPONSE = "malformed_response"
    TRANSPORT_FAILURE = "transport_failure"
    SOCKET_OPEN_FAILED = "socket_open_failed"


class StreamRole(Enum):
    """What a socket carries."""

    TOPIC = "topic"
    USER_DATA = "user-data"


class StreamState(Enum):
    """Socket lifecycle states. There is no way back from CLOSED."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
