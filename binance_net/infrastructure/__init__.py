"""Infrastructure module - Configuration, logging, clock and signing."""

from .config import Settings, get_settings
from .clock import ClockSynchronizer
from .logging_setup import setup_logging
from .signing import Credentials, RequestSigner

__all__ = [
    "Settings",
    "get_settings",
    "ClockSynchronizer",
    "setup_logging",
    "Credentials",
    "RequestSigner",
]
