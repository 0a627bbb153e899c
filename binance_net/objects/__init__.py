"""Objects module - Enums, result envelope and response models."""

from .enums import (
    ErrorKind,
    KlineInterval,
    OrderSide,
    OrderType,
    StreamRole,
    StreamState,
    TimeInForce,
)
from .results import ApiError, ApiResult, BinanceAPIError

__all__ = [
    "ApiError",
    "ApiResult",
    "BinanceAPIError",
    "ErrorKind",
    "KlineInterval",
    "OrderSide",
    "OrderType",
    "StreamRole",
    "StreamState",
    "TimeInForce",
]
