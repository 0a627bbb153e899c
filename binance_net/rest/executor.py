"""
HTTP request execution.

Builds the request URL, signs it when required, performs the call and maps
every expected outcome into an ``ApiResult``.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar
from urllib.parse import urlencode

import aiohttp
import orjson
from loguru import logger
from pydantic import ValidationError
from yarl import URL

from ..infrastructure.signing import Credentials
from ..objects.enums import ErrorKind
from ..objects.models import ErrorBody
from ..objects.results import ApiResult
from .endpoints import API_KEY_HEADER, GET

T = TypeVar("T")

NOT_AUTHENTICATED_MESSAGE = "No api credentials provided, can't request private endpoints"


@dataclass
class RequestSpec:
    """
    Description of a single REST call.

    ``params`` keeps insertion order; that order is the signed payload.
    ``keyed`` calls send the API key header without a signature.
    """

    endpoint: str
    version: str
    params: dict[str, Any] = field(default_factory=dict)
    method: str = GET
    signed: bool = False
    keyed: bool = False

    @property
    def authenticated(self) -> bool:
        return self.signed or self.keyed


def _format_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format(Decimal(repr(value)), "f")
    return str(value)


def build_query(params: dict[str, Any]) -> str:
    """Encode ``params`` in insertion order, skipping None values."""
    return urlencode(
        [(key, _format_value(value)) for key, value in params.items() if value is not None]
    )


class RequestExecutor:
    """
    Executes REST calls against ``{base_address}/v{version}/{endpoint}``.

    Expected failures never raise: missing credentials, HTTP errors,
    transport errors and malformed bodies all come back as failed results.

    Example:
        ```python
        executor = RequestExecutor("https://api.binance.com/api")
        result = await executor.execute(RequestSpec("ping", "1"), orjson.loads)
        await executor.close()
        ```
    """

    def __init__(
        self,
        base_address: str,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            base_address: REST base address, e.g. ``https://api.binance.com/api``.
            timeout: Total timeout per call (seconds).
            session: Externally owned session. If None, one is created lazily.
        """
        self._base_address = base_address.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def initialize(self) -> None:
        """Initialize HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            logger.debug(f"HTTP session created. Base address: {self._base_address}")

    async def close(self) -> None:
        """Close HTTP session if this executor created it."""
        if self._session and self._owns_session:
            await self._session.close()
            self._session = None

    def build_url(self, spec: RequestSpec, credentials: Credentials | None = None) -> str:
        """
        Build the full request URL.

        For signed specs the signature is computed over the query string as
        built here and appended as the last parameter.
        """
        url = f"{self._base_address}/v{spec.version}/{spec.endpoint}"
        query = build_query(spec.params)

        if spec.signed:
            signature = credentials.signer.sign(query)
            query = f"{query}&signature={signature}" if query else f"signature={signature}"

        return f"{url}?{query}" if query else url

    async def execute(
        self,
        spec: RequestSpec,
        parser: Callable[[bytes], T],
        credentials: Credentials | None = None,
    ) -> ApiResult[T]:
        """
        Perform the call described by ``spec``.

        Args:
            spec: Request description.
            parser: Turns a successful body into the payload; raises on malformed input.
            credentials: Required for signed and keyed specs.

        Returns:
            The parsed payload or a structured error.
        """
        if spec.authenticated and credentials is None:
            return ApiResult.fail(ErrorKind.NOT_AUTHENTICATED, NOT_AUTHENTICATED_MESSAGE)

        if self._session is None:
            await self.initialize()

        url = self.build_url(spec, credentials)
        headers = {API_KEY_HEADER: credentials.api_key} if spec.authenticated else {}

        logger.debug(f"Sending {spec.method} request to {url}")
        try:
            async with self._session.request(
                spec.method, URL(url, encoded=True), headers=headers
            ) as response:
                body = await response.read()
                status = response.status
                reason = response.reason
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            message = str(e) or e.__class__.__name__
            logger.warning(f"Request to {spec.endpoint} failed: {message}")
            return ApiResult.fail(ErrorKind.TRANSPORT_FAILURE, message)

        if status >= 400:
            return self._error_result(spec, status, reason, body)

        try:
            data = parser(body)
        except (ValueError, TypeError, KeyError, IndexError) as e:
            logger.warning(f"Malformed response from {spec.endpoint}: {e}")
            return ApiResult.fail(ErrorKind.MALFORMED_RESPONSE, str(e))

        return ApiResult.ok(data)

    @staticmethod
    def _error_result(
        spec: RequestSpec, status: int, reason: str | None, body: bytes
    ) -> ApiResult[Any]:
        """Map a >= 400 response to a structured or fallback error."""
        try:
            error = ErrorBody.model_validate(orjson.loads(body))
        except (orjson.JSONDecodeError, ValidationError, TypeError):
            message = f"HTTP error {status}: {reason or 'Unknown error'}"
            logger.warning(f"Request to {spec.endpoint} failed: {message}")
            return ApiResult.fail(ErrorKind.TRANSPORT_FAILURE, message)

        logger.warning(f"API error {error.code} from {spec.endpoint}: {error.message}")
        return ApiResult.fail(ErrorKind.SERVER_REJECTED, error.message, code=error.code)
