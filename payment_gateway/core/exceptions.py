"""
Error taxonomy for the verification subsystem.

Every error is per-request: none of them leaves the cache or throttle in a
partially written state, and none is retried internally.
"""
import math
from typing import Any, Dict, List, Optional


class PaymentGatewayError(Exception):
    """Base exception for gateway errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, order_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.order_id = order_id

    def to_response(self, include_details: bool = False) -> Dict[str, Any]:
        """Render the JSON error body returned to the storefront."""
        body: Dict[str, Any] = {"success": False, "error": self.message}
        if self.order_id is not None:
            body["order_id"] = self.order_id
        return body


class OrderValidationError(PaymentGatewayError):
    """Raised when an order id or request payload is malformed."""

    status_code = 400

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        order_id: Optional[str] = None,
    ):
        super().__init__(message, order_id=order_id)
        self.errors = errors or []

    def to_response(self, include_details: bool = False) -> Dict[str, Any]:
        body = super().to_response(include_details)
        if self.errors:
            body["details"] = self.errors
        return body


class RateLimitedError(PaymentGatewayError):
    """Raised when a throttle rejects a call. Callers should back off."""

    status_code = 429

    def __init__(self, message: str, retry_after: float, order_id: Optional[str] = None):
        super().__init__(message, order_id=order_id)
        self.retry_after = retry_after

    def to_response(self, include_details: bool = False) -> Dict[str, Any]:
        body = super().to_response(include_details)
        body["retryAfter"] = self.retry_after_seconds
        return body

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds to wait, never less than one."""
        return max(1, math.ceil(self.retry_after))


class OrderNotFoundError(PaymentGatewayError):
    """Raised when the payment processor has no such order."""

    status_code = 404

    def __init__(self, order_id: str):
        super().__init__("Order not found", order_id=order_id)


class UpstreamFailureError(PaymentGatewayError):
    """Raised on processor timeouts, transport errors, 5xx or malformed payloads."""

    status_code = 500

    def __init__(
        self,
        message: str,
        order_id: Optional[str] = None,
        details: Any = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message, order_id=order_id)
        self.details = details
        self.upstream_status = upstream_status

    def to_response(self, include_details: bool = False) -> Dict[str, Any]:
        body = super().to_response(include_details)
        if include_details and self.details is not None:
            body["details"] = self.details
        return body


class WebhookAuthError(PaymentGatewayError):
    """Raised when a webhook signature is missing, stale or wrong."""

    status_code = 401

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message)


class WebhookPayloadError(PaymentGatewayError):
    """Raised when a correctly signed webhook body cannot be processed."""

    status_code = 500

    def __init__(self, reason: str):
        super().__init__("Webhook processing failed")
        self.reason = reason

    def to_response(self, include_details: bool = False) -> Dict[str, Any]:
        body = super().to_response(include_details)
        if include_details:
            body["details"] = self.reason
        return body
