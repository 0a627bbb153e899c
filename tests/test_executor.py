"""
Tests for the HTTP request executor.
"""

import asyncio

import aiohttp
import orjson
import pytest

from binance_net.infrastructure.signing import Credentials
from binance_net.objects.enums import ErrorKind
from binance_net.objects.models import ServerTime, model_parser
from binance_net.rest.executor import RequestExecutor, RequestSpec, build_query


@pytest.fixture
def executor(session):
    return RequestExecutor("https://x/api", session=session)


@pytest.fixture
def credentials():
    return Credentials("api-key", "s")


def test_build_query_keeps_insertion_order():
    """Parameters are encoded in the order they were added; None is skipped."""
    query = build_query({"symbol": "BTCUSDT", "limit": None, "timestamp": 1000, "side": "BUY"})

    assert query == "symbol=BTCUSDT&timestamp=1000&side=BUY"


def test_build_query_formats_values():
    """Booleans, floats and enums use the API spelling."""
    from binance_net.objects.enums import OrderSide

    query = build_query({"reduceOnly": True, "quantity": 0.00001, "side": OrderSide.SELL})

    assert query == "reduceOnly=true&quantity=0.00001&side=SELL"


def test_build_url_public(executor):
    """Base + version + endpoint, no query when there are no params."""
    url = executor.build_url(RequestSpec("ping", "1"))

    assert url == "https://x/api/v1/ping"


def test_build_url_signed_appends_signature(executor, credentials):
    """The signature covers the query as built and comes last."""
    spec = RequestSpec(
        "openOrders", "3", {"symbol": "BTCUSDT", "timestamp": 1000}, signed=True
    )

    url = executor.build_url(spec, credentials)

    assert url == (
        "https://x/api/v3/openOrders?symbol=BTCUSDT&timestamp=1000"
        "&signature=bcd2b335335f2562844cb60ffecd121cce7e94924b5d4f9496d7bdcf084e9da2"
    )


@pytest.mark.asyncio
async def test_ping_url(executor, session):
    """Base address, version and endpoint make up the URL."""
    session.add("/ping", {})

    result = await executor.execute(RequestSpec("ping", "1"), orjson.loads)

    assert result.success
    assert result.data == {}
    assert session.requests[0].url == "https://x/api/v1/ping"
    assert session.requests[0].method == "GET"


@pytest.mark.asyncio
async def test_public_call_has_no_api_key_header(executor, session, credentials):
    """Public calls never carry the key, even when credentials exist."""
    session.add("/ping", {})

    await executor.execute(RequestSpec("ping", "1"), orjson.loads, credentials)

    assert "X-MBX-APIKEY" not in session.requests[0].headers


@pytest.mark.asyncio
async def test_signed_call_has_api_key_header(executor, session, credentials):
    """Signed calls carry the key header."""
    session.add("/account", {"balances": []})

    await executor.execute(
        RequestSpec("account", "3", {"timestamp": 1000}, signed=True), orjson.loads, credentials
    )

    assert session.requests[0].headers["X-MBX-APIKEY"] == "api-key"
    assert session.requests[0].url == (
        "https://x/api/v3/account?timestamp=1000"
        "&signature=e37620680db54fa35e7053cc0f2944349aec1e78136ebd8c577eb436575f24ef"
    )


@pytest.mark.asyncio
async def test_keyed_call_is_not_signed(executor, session, credentials):
    """Keyed calls send the key without a signature."""
    session.add("/userDataStream", {"listenKey": "abc"})

    await executor.execute(
        RequestSpec("userDataStream", "1", method="POST", keyed=True), orjson.loads, credentials
    )

    request = session.requests[0]
    assert request.headers["X-MBX-APIKEY"] == "api-key"
    assert "signature" not in request.url


@pytest.mark.asyncio
async def test_signed_without_credentials_makes_no_call(executor, session):
    """Missing credentials are reported, the network is untouched."""
    result = await executor.execute(
        RequestSpec("account", "3", {"timestamp": 1}, signed=True), orjson.loads
    )

    assert not result.success
    assert result.error.kind == ErrorKind.NOT_AUTHENTICATED
    assert session.requests == []


@pytest.mark.asyncio
async def test_structured_server_error(executor, session):
    """HTTP 400 with an error body keeps the exact code and message."""
    session.add("/depth", {"code": -1121, "msg": "Invalid symbol."}, status=400, reason="Bad Request")

    result = await executor.execute(RequestSpec("depth", "1", {"symbol": "NOPE"}), orjson.loads)

    assert not result.success
    assert result.data is None
    assert result.error.kind == ErrorKind.SERVER_REJECTED
    assert result.error.code == -1121
    assert result.error.message == "Invalid symbol."


@pytest.mark.asyncio
async def test_unparseable_error_body_falls_back(executor, session):
    """HTTP 400 with garbage degrades to a transport-class error."""
    session.add("/depth", "<html>Bad Request</html>", status=400, reason="Bad Request")

    result = await executor.execute(RequestSpec("depth", "1"), orjson.loads)

    assert not result.success
    assert result.error.kind == ErrorKind.TRANSPORT_FAILURE
    assert result.error.code == 0
    assert "400" in result.error.message


@pytest.mark.asyncio
async def test_error_body_with_wrong_shape_falls_back(executor, session):
    """Valid JSON that is not an error object is treated like garbage."""
    session.add("/depth", [1, 2, 3], status=503, reason="Service Unavailable")

    result = await executor.execute(RequestSpec("depth", "1"), orjson.loads)

    assert result.error.kind == ErrorKind.TRANSPORT_FAILURE
    assert "503" in result.error.message


@pytest.mark.asyncio
async def test_malformed_success_body(executor, session):
    """A 200 body the parser rejects is a malformed response."""
    session.add("/time", {"unexpected": True})

    result = await executor.execute(RequestSpec("time", "1"), model_parser(ServerTime))

    assert not result.success
    assert result.error.kind == ErrorKind.MALFORMED_RESPONSE


@pytest.mark.asyncio
async def test_invalid_json_success_body(executor, session):
    """Non-JSON on 200 is a malformed response as well."""
    session.add("/time", "not json")

    result = await executor.execute(RequestSpec("time", "1"), orjson.loads)

    assert result.error.kind == ErrorKind.MALFORMED_RESPONSE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        aiohttp.ClientConnectionError("Connection refused"),
        asyncio.TimeoutError(),
        OSError("Network is unreachable"),
    ],
)
async def test_transport_failure(executor, session, error):
    """Connection problems come back with code 0."""
    session.error = error

    result = await executor.execute(RequestSpec("ping", "1"), orjson.loads)

    assert not result.success
    assert result.error.kind == ErrorKind.TRANSPORT_FAILURE
    assert result.error.code == 0
    assert result.error.message


@pytest.mark.asyncio
async def test_external_session_not_closed(executor, session):
    """The executor only closes sessions it created."""
    await executor.close()

    assert not session.closed
