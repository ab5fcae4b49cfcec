"""Core verification logic: cache, throttle, signatures and orchestration."""
from .exceptions import (
    OrderNotFoundError,
    OrderValidationError,
    PaymentGatewayError,
    RateLimitedError,
    UpstreamFailureError,
    WebhookAuthError,
    WebhookPayloadError,
)
from .maintenance import MaintenanceSweeper
from .models import PaymentStatus, TTLClass, VerificationResult
from .orders import OrderService
from .result_cache import ResultCache
from .signature import SignatureVerifier, compute_signature
from .throttle import FixedWindowThrottle, RequestThrottle
from .verification import VerificationService

__all__ = [
    "FixedWindowThrottle",
    "MaintenanceSweeper",
    "OrderNotFoundError",
    "OrderService",
    "OrderValidationError",
    "PaymentGatewayError",
    "PaymentStatus",
    "RateLimitedError",
    "RequestThrottle",
    "ResultCache",
    "SignatureVerifier",
    "TTLClass",
    "UpstreamFailureError",
    "VerificationResult",
    "VerificationService",
    "WebhookAuthError",
    "WebhookPayloadError",
    "compute_signature",
]
