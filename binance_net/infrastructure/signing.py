"""
Request signing.

The secret is turned into a prepared HMAC-SHA256 object on construction and
is not kept as a string afterwards.
"""

import hashlib
import hmac


class RequestSigner:
    """
    Signs query strings with HMAC-SHA256.

    The signature covers the exact query string that goes on the wire, so
    parameter order matters and is never re-sorted here.

    Example:
        ```python
        signer = RequestSigner("secret")
        signature = signer.sign("symbol=BTCUSDT&timestamp=1000")
        ```
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Api secret empty")
        self._hmac = hmac.new(secret.encode("utf-8"), digestmod=hashlib.sha256)

    def sign(self, query_string: str) -> str:
        """Return the lowercase hex HMAC-SHA256 of ``query_string``."""
        digest = self._hmac.copy()
        digest.update(query_string.encode("utf-8"))
        return digest.hexdigest()


class Credentials:
    """API key plus the signer built from its secret."""

    __slots__ = ("api_key", "signer")

    def __init__(self, api_key: str, api_secret: str) -> None:
        if not api_key:
            raise ValueError("Api key empty")
        self.api_key = api_key
        self.signer = RequestSigner(api_secret)

    def __repr__(self) -> str:
        return f"Credentials(api_key='{self.api_key[:4]}...')"
