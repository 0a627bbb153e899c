"""
Configuration module for binance-net.

Uses pydantic-settings for type-safe configuration management with environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BinanceSettings(BaseSettings):
    """Binance API configuration."""

    model_config = SettingsConfigDict(env_prefix="BINANCE_")

    api_key: SecretStr | None = Field(default=None, description="Binance API Key")
    api_secret: SecretStr | None = Field(default=None, description="Binance API Secret")

    # REST API endpoint
    base_address: str = Field(
        default="https://api.binance.com/api",
        description="Binance REST API base address (versions are appended)",
    )

    # WebSocket endpoint
    base_socket_address: str = Field(
        default="wss://stream.binance.com:9443/ws",
        description="Binance WebSocket base address",
    )

    auto_timestamp: bool = Field(
        default=False,
        description="Synchronize the local clock with the server before signed calls",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Total timeout for a single REST call (seconds)",
    )

    @property
    def has_credentials(self) -> bool:
        """Check whether both halves of the API credentials are configured."""
        return bool(
            self.api_key
            and self.api_secret
            and self.api_key.get_secret_value()
            and self.api_secret.get_secret_value()
        )


class WebSocketSettings(BaseSettings):
    """WebSocket connection configuration."""

    model_config = SettingsConfigDict(env_prefix="WS_")

    open_timeout: float = Field(
        default=10.0,
        description="Timeout for the opening handshake (seconds)",
    )
    close_timeout: float = Field(
        default=10.0,
        description="Timeout for the closing handshake (seconds)",
    )

    # Heartbeat settings
    ping_interval: float | None = Field(
        default=20.0,
        description="Keepalive ping interval (seconds), None disables pings",
    )
    ping_timeout: float | None = Field(
        default=20.0,
        description="Keepalive pong timeout (seconds)",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>",
        description="Loguru format string",
    )
    rotation: str = Field(
        default="100 MB",
        description="Log file rotation size",
    )
    retention: str = Field(
        default="7 days",
        description="Log file retention period",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path, None logs to stderr only",
    )


class Settings(BaseSettings):
    """Main settings class aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Nested settings
    binance: BinanceSettings = Field(default_factory=BinanceSettings)
    websocket: WebSocketSettings = Field(default_factory=WebSocketSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.

    Returns:
        Settings: The library settings.
    """
    return Settings()
