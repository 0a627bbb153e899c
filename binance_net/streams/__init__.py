"""Streams module - Socket registry and subscription lifecycle."""

from .registry import BinanceStream, StreamConnection, StreamRegistry
from .socket_client import BinanceSocketClient

__all__ = ["BinanceStream", "StreamConnection", "StreamRegistry", "BinanceSocketClient"]
