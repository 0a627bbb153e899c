"""
binance-net: asyncio client for the Binance REST and WebSocket APIs.

Example:
    ```python
    from binance_net import BinanceClient, BinanceSocketClient

    async with BinanceClient() as client:
        result = await client.ping()
    ```
"""

from .infrastructure import Settings, get_settings, setup_logging
from .objects import (
    ApiError,
    ApiResult,
    BinanceAPIError,
    ErrorKind,
    KlineInterval,
    OrderSide,
    OrderType,
    TimeInForce,
)
from .rest import BinanceClient
from .streams import BinanceSocketClient, StreamConnection

__version__ = "1.0.0"

__all__ = [
    "ApiError",
    "ApiResult",
    "BinanceAPIError",
    "BinanceClient",
    "BinanceSocketClient",
    "ErrorKind",
    "KlineInterval",
    "OrderSide",
    "OrderType",
    "Settings",
    "StreamConnection",
    "TimeInForce",
    "get_settings",
    "setup_logging",
]
