"""
Result envelope returned by every public client operation.

Expected failures (missing credentials, bad arguments, server rejections,
malformed bodies, transport errors, sockets that would not open) are
reported here instead of being raised.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from .enums import ErrorKind

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class ApiError:
    """Structured error: category plus the exchange code and message."""

    kind: ErrorKind
    code: int
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value} ({self.code}): {self.message}"


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """
    Discriminated result of an API call.

    ``error`` is None exactly when ``success`` is True.
    """

    success: bool
    data: T | None = None
    error: ApiError | None = None

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("A successful result cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("A failed result must carry an error")
        if not self.success and self.data is not None:
            raise ValueError("A failed result cannot carry data")

    @classmethod
    def ok(cls, data: T) -> "ApiResult[T]":
        """Build a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, code: int = 0) -> "ApiResult[T]":
        """Build a failed result."""
        return cls(success=False, error=ApiError(kind=kind, code=code, message=message))

    @classmethod
    def from_error(cls, error: ApiError) -> "ApiResult[T]":
        """Re-wrap an error from a result of another payload type."""
        return cls(success=False, error=error)

    def map(self, fn: Callable[[T], U]) -> "ApiResult[U]":
        """Transform the payload of a successful result."""
        if not self.success:
            return ApiResult.from_error(self.error)
        return ApiResult.ok(fn(self.data))

    def unwrap(self) -> T:
        """
        Return the payload or raise.

        Raises:
            BinanceAPIError: If the result is a failure.
        """
        if not self.success:
            raise BinanceAPIError(self.error.code, self.error.message, self.error.kind)
        return self.data


class BinanceAPIError(Exception):
    """Binance API error."""

    def __init__(
        self,
        code: int,
        message: str,
        kind: ErrorKind = ErrorKind.SERVER_REJECTED,
    ) -> None:
        self.code = code
        self.message = message
        self.kind = kind
        super().__init__(f"Binance API Error {code}: {message}")
