"""
Webhook signature verification.

The processor signs each webhook as::

    base64(HMAC-SHA256(secret, timestamp + raw_body))

and sends the timestamp and signature in the ``x-webhook-timestamp`` and
``x-webhook-signature`` headers. The digest must be computed over the raw,
unparsed body.
"""
import base64
import hashlib
import hmac
import time
from typing import Callable, Optional, Union

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


def compute_signature(secret: str, timestamp: str, raw_body: Union[bytes, str]) -> str:
    """Compute the base64 HMAC-SHA256 signature for a webhook body."""
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    digest = hmac.new(
        secret.encode("utf-8"),
        timestamp.encode("utf-8") + raw_body,
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


class SignatureVerifier:
    """
    Verifies webhook authenticity and freshness.

    ``verify`` never raises: every failure, including malformed headers,
    is reported as ``False`` and the caller decides how to respond.
    """

    def __init__(
        self,
        secret: str,
        tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            secret: Shared secret (the processor client secret)
            tolerance_seconds: Max allowed distance between the webhook
                timestamp and the local clock, in either direction
            clock: Wall-clock source returning epoch seconds
        """
        self._secret = secret
        self.tolerance_seconds = tolerance_seconds
        self._clock = clock

    def sign(self, timestamp: str, raw_body: Union[bytes, str]) -> str:
        return compute_signature(self._secret, timestamp, raw_body)

    def is_fresh(self, timestamp_header: Optional[str]) -> bool:
        """Check the timestamp is an integer within the tolerance window."""
        if not timestamp_header:
            return False
        try:
            webhook_time = int(timestamp_header.strip())
        except ValueError:
            return False
        return abs(int(self._clock()) - webhook_time) <= self.tolerance_seconds

    def verify(
        self,
        raw_body: bytes,
        timestamp_header: Optional[str],
        signature_header: Optional[str],
    ) -> bool:
        """
        Verify a webhook delivery.

        Args:
            raw_body: Raw request body bytes
            timestamp_header: Value of x-webhook-timestamp
            signature_header: Value of x-webhook-signature

        Returns:
            bool: True only if the timestamp is fresh and the signature matches
        """
        if not timestamp_header or not signature_header:
            logger.warning("webhook_signature_headers_missing")
            return False

        if not self.is_fresh(timestamp_header):
            logger.warning("webhook_timestamp_rejected", timestamp=timestamp_header)
            return False

        expected = self.sign(timestamp_header, raw_body)
        if not hmac.compare_digest(expected.encode("ascii"), signature_header.encode("utf-8")):
            logger.warning("webhook_signature_mismatch")
            return False

        return True
