"""HMAC-signed presigned URLs for the local storage backends.

The filesystem and in-memory backends have no provider to issue presigned
URLs, so they sign their own. A URL encodes the bucket, the single key, the
permitted operation and an absolute expiry, and carries an HMAC-SHA256
signature over all four. verify() rejects tampered, expired or mis-scoped URLs.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from urllib.parse import parse_qs, quote, unquote, urlsplit

from docvault.storage.errors import UnauthorizedAccessError
from docvault.storage.models import PresignOperation

URL_SCHEME = "docvault"


class UrlSigner:
    """Signs and verifies presigned URLs for one bucket."""

    def __init__(self, bucket: str, secret: str | None = None) -> None:
        """Initialize the signer.

        Args:
            bucket: Logical bucket name embedded in every URL.
            secret: HMAC secret. If None, a random per-process secret is used,
                so URLs do not survive a restart.
        """
        self._bucket = bucket
        self._secret = (secret or secrets.token_hex(32)).encode("utf-8")

    def _signature(self, operation: str, key: str, expires_at: int) -> str:
        payload = f"{operation}\n{self._bucket}\n{key}\n{expires_at}".encode()
        return hmac.new(self._secret, payload, hashlib.sha256).hexdigest()

    def sign(
        self,
        operation: PresignOperation,
        key: str,
        expires_in: int,
        *,
        now: float | None = None,
    ) -> str:
        """Return a URL permitting operation on key for expires_in seconds."""
        issued_at = time.time() if now is None else now
        expires_at = int(issued_at) + expires_in
        signature = self._signature(operation.value, key, expires_at)
        return (
            f"{URL_SCHEME}://{self._bucket}/{quote(key, safe='/')}"
            f"?op={operation.value}&expires={expires_at}&signature={signature}"
        )

    def verify(
        self,
        url: str,
        operation: PresignOperation,
        *,
        now: float | None = None,
    ) -> str:
        """Verify a URL and return the key it is scoped to.

        Raises:
            UnauthorizedAccessError: If the URL is malformed, tampered with,
                expired, or issued for another operation or bucket.
        """
        parts = urlsplit(url)
        query = parse_qs(parts.query)
        key = unquote(parts.path.lstrip("/"))

        try:
            op = query["op"][0]
            expires_at = int(query["expires"][0])
            signature = query["signature"][0]
        except (KeyError, IndexError, ValueError) as e:
            raise UnauthorizedAccessError("Malformed presigned URL", key=key) from e

        if parts.scheme != URL_SCHEME or parts.netloc != self._bucket:
            raise UnauthorizedAccessError("Presigned URL issued for another bucket", key=key)

        expected = self._signature(op, key, expires_at)
        if not hmac.compare_digest(expected, signature):
            raise UnauthorizedAccessError("Invalid presigned URL signature", key=key)

        if op != operation.value:
            raise UnauthorizedAccessError(
                f"Presigned URL does not permit {operation.value}", key=key
            )

        current = time.time() if now is None else now
        if current > expires_at:
            raise UnauthorizedAccessError("Presigned URL has expired", key=key)

        return key
