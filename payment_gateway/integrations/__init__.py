"""External integrations (Cashfree)."""
from .cashfree_client import CashfreeClient, ProcessorError, ProcessorErrorType
from .webhook_handler import WebhookEvent, WebhookEventType, WebhookHandler

__all__ = [
    "CashfreeClient",
    "ProcessorError",
    "ProcessorErrorType",
    "WebhookEvent",
    "WebhookEventType",
    "WebhookHandler",
]
