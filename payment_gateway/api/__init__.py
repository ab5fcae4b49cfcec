"""HTTP API for the payment gateway."""
from .main import create_app
from .schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    ErrorResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookResponse,
)

__all__ = [
    "CreateOrderRequest",
    "CreateOrderResponse",
    "ErrorResponse",
    "VerifyPaymentRequest",
    "VerifyPaymentResponse",
    "WebhookResponse",
    "create_app",
]
