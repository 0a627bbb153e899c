"""REST module - Request execution and the Binance REST client."""

from .client import BinanceClient
from .executor import RequestExecutor, RequestSpec

__all__ = ["BinanceClient", "RequestExecutor", "RequestSpec"]
