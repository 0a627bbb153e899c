"""
Tests for request signing.
"""

import pytest

from binance_net.infrastructure.signing import Credentials, RequestSigner

GOLDEN_SIGNATURE = "bcd2b335335f2562844cb60ffecd121cce7e94924b5d4f9496d7bdcf084e9da2"


def test_golden_signature():
    """HMAC-SHA256("s", query) must match the reference value byte for byte."""
    signer = RequestSigner("s")

    assert signer.sign("symbol=BTCUSDT&timestamp=1000") == GOLDEN_SIGNATURE


def test_signature_is_deterministic():
    """Identical secret and query always give the same signature."""
    first = RequestSigner("s").sign("symbol=BTCUSDT&timestamp=1000")
    second = RequestSigner("s")

    assert second.sign("symbol=BTCUSDT&timestamp=1000") == first
    # The prepared HMAC must not accumulate state between calls
    assert second.sign("symbol=BTCUSDT&timestamp=1000") == first


@pytest.mark.parametrize(
    "query",
    [
        "symbol=BTCUSDT&timestamp=1001",
        "timestamp=1000&symbol=BTCUSDT",
        "symbol=ETHUSDT&timestamp=1000",
    ],
)
def test_signature_changes_with_value_or_order(query):
    """Changing any value or the parameter order changes the signature."""
    signature = RequestSigner("s").sign(query)

    assert signature != GOLDEN_SIGNATURE
    assert len(signature) == 64
    assert signature == signature.lower()


def test_signature_depends_on_secret():
    """A different secret gives a different signature."""
    signature = RequestSigner("other").sign("symbol=BTCUSDT&timestamp=1000")

    assert signature != GOLDEN_SIGNATURE


def test_empty_secret_rejected():
    """An empty secret is a configuration error."""
    with pytest.raises(ValueError):
        RequestSigner("")


def test_credentials_require_key_and_secret():
    """Both halves of the credentials are required."""
    with pytest.raises(ValueError):
        Credentials("", "secret")
    with pytest.raises(ValueError):
        Credentials("key", "")


def test_credentials_do_not_keep_raw_secret():
    """Only the key and the prepared signer are stored."""
    credentials = Credentials("key", "top-secret")

    assert credentials.api_key == "key"
    assert "top-secret" not in repr(credentials)
    assert not hasattr(credentials, "api_secret")
