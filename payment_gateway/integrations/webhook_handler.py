"""
Cashfree webhook handler with signature verification and cache upkeep.

Implements:
- Signature and freshness verification before anything else
- Event parsing and routing to registered handlers
- Cache invalidation on successful payments so the next verification
  re-fetches authoritative state from the processor
"""
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import structlog

from ..core.exceptions import WebhookAuthError, WebhookPayloadError
from ..core.result_cache import ResultCache
from ..core.signature import SignatureVerifier
from ..monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

TIMESTAMP_HEADER = "x-webhook-timestamp"
SIGNATURE_HEADER = "x-webhook-signature"


class WebhookEventType(str, Enum):
    """Event types with dedicated handling. Anything else is UNKNOWN."""

    PAYMENT_SUCCESS = "PAYMENT_SUCCESS_WEBHOOK"
    PAYMENT_FAILED = "PAYMENT_FAILED_WEBHOOK"
    PAYMENT_USER_DROPPED = "PAYMENT_USER_DROPPED_WEBHOOK"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw_type: Any) -> "WebhookEventType":
        try:
            return cls(raw_type)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class WebhookEvent:
    """A verified webhook delivery. Lives for one handle() call only."""

    event_type: WebhookEventType
    raw_type: Optional[str]
    timestamp: str
    signature: str
    raw_body: bytes
    order_id: Optional[str] = None
    order_status: Optional[str] = None
    event_time: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


EventHandler = Callable[[WebhookEvent], Awaitable[str]]


class WebhookHandler:
    """
    Handles processor webhooks.

    Once a delivery's signature checks out it is always acknowledged, even
    for event types this service does not know: the acknowledgement means
    "received", not "understood".
    """

    def __init__(self, verifier: SignatureVerifier, cache: ResultCache):
        """
        Initialize webhook handler.

        Args:
            verifier: Signature verifier holding the shared secret
            cache: Verification cache kept consistent with processor state
        """
        self.verifier = verifier
        self.cache = cache
        self.event_handlers: Dict[WebhookEventType, EventHandler] = {}

        self.register_handler(WebhookEventType.PAYMENT_SUCCESS, self.handle_payment_success)
        self.register_handler(WebhookEventType.PAYMENT_FAILED, self.handle_payment_failed)
        self.register_handler(
            WebhookEventType.PAYMENT_USER_DROPPED, self.handle_payment_user_dropped
        )

    def register_handler(self, event_type: WebhookEventType, handler: EventHandler) -> None:
        """
        Register a handler for a specific event type.

        Handlers receive the parsed event and return a short action name
        that is echoed in the acknowledgement.
        """
        self.event_handlers[event_type] = handler
        logger.debug("webhook_handler_registered", event_type=event_type.value)

    @staticmethod
    def parse_event(raw_body: bytes, timestamp: str, signature: str) -> WebhookEvent:
        """
        Parse a verified body into a WebhookEvent.

        A body without a usable ``type`` or ``data`` is still a valid
        delivery and parses as UNKNOWN. Only the event types with dedicated
        handling require ``data.order.order_id``.

        Raises:
            WebhookPayloadError: Body is not JSON, or a known event type
                carries no order id
        """
        try:
            payload = json.loads(raw_body)
        except (UnicodeDecodeError, ValueError) as e:
            raise WebhookPayloadError(f"Invalid JSON body: {e}") from e

        if not isinstance(payload, dict):
            payload = {}

        raw_type = payload.get("type")
        if not isinstance(raw_type, str) or not raw_type:
            raw_type = None
        data = payload.get("data")
        if not isinstance(data, dict):
            data = {}

        event_type = WebhookEventType.parse(raw_type)
        order = data.get("order")
        if not isinstance(order, dict):
            order = {}
        order_id = order.get("order_id")

        if event_type != WebhookEventType.UNKNOWN and not order_id:
            raise WebhookPayloadError("Order data is required in webhook")

        return WebhookEvent(
            event_type=event_type,
            raw_type=raw_type,
            timestamp=timestamp,
            signature=signature,
            raw_body=raw_body,
            order_id=order_id,
            order_status=order.get("order_status"),
            event_time=payload.get("event_time"),
            data=data,
        )

    async def handle(self, raw_body: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
        """
        Verify, parse and dispatch one webhook delivery.

        Args:
            raw_body: Raw request body bytes
            headers: Request headers (looked up case-insensitively)

        Returns:
            Dict[str, Any]: Acknowledgement body

        Raises:
            WebhookAuthError: Signature missing, stale or wrong; nothing is mutated
            WebhookPayloadError: Signed body could not be parsed; nothing is mutated
        """
        start_time = time.time()
        lowered = {key.lower(): value for key, value in headers.items()}
        timestamp = lowered.get(TIMESTAMP_HEADER)
        signature = lowered.get(SIGNATURE_HEADER)

        if not self.verifier.verify(raw_body, timestamp, signature):
            metrics.record_webhook_event("unverified", "rejected", time.time() - start_time)
            logger.error("webhook_signature_verification_failed")
            if not timestamp or not signature:
                raise WebhookAuthError("Missing webhook signature headers")
            raise WebhookAuthError("Invalid signature")

        try:
            event = self.parse_event(raw_body, timestamp, signature)
        except WebhookPayloadError as e:
            metrics.record_webhook_event("unparsed", "malformed", time.time() - start_time)
            logger.error("webhook_payload_invalid", reason=e.reason)
            raise

        logger.info(
            "webhook_received",
            event_type=event.raw_type,
            order_id=event.order_id,
            event_time=event.event_time,
        )

        handler = self.event_handlers.get(event.event_type)
        if handler is None:
            logger.warning("webhook_unknown_event_type", event_type=event.raw_type)
            action = "ignored"
        else:
            action = await handler(event)

        metrics.record_webhook_event(
            event.event_type.value, "acknowledged", time.time() - start_time
        )
        return {
            "success": True,
            "message": "Webhook processed successfully",
            "event_type": event.raw_type,
            "order_id": event.order_id,
            "action": action,
        }

    async def handle_payment_success(self, event: WebhookEvent) -> str:
        """Drop the cached result so the next verification re-fetches it."""
        removed = self.cache.invalidate(event.order_id)
        metrics.set_cache_size(len(self.cache))
        logger.info(
            "webhook_payment_success",
            order_id=event.order_id,
            cache_entry_removed=removed,
        )
        return "cache_invalidated"

    async def handle_payment_failed(self, event: WebhookEvent) -> str:
        logger.info("webhook_payment_failed", order_id=event.order_id)
        return "logged"

    async def handle_payment_user_dropped(self, event: WebhookEvent) -> str:
        logger.info("webhook_payment_user_dropped", order_id=event.order_id)
        return "logged"
