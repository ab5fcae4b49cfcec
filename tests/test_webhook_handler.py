"""
Unit tests for the webhook handler.
"""
import json
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock

import pytest

from payment_gateway.core.exceptions import WebhookAuthError, WebhookPayloadError
from payment_gateway.core.models import PaymentStatus, VerificationResult
from payment_gateway.core.result_cache import ResultCache
from payment_gateway.core.signature import SignatureVerifier, compute_signature
from payment_gateway.integrations.webhook_handler import (
    WebhookEventType,
    WebhookHandler,
)

SECRET = "test_secret_key"
NOW = 1_700_000_000
ORDER_ID = "WX1234567890123"


def webhook_body(event_type: str, order_id: Optional[str] = ORDER_ID, **extra: Any) -> bytes:
    data: Dict[str, Any] = {"order": {"order_id": order_id, "order_status": "PAID"}}
    if order_id is None:
        data = {}
    return json.dumps({"type": event_type, "data": data, **extra}).encode()


def signed_headers(raw_body: bytes, timestamp: int = NOW) -> Dict[str, str]:
    return {
        "x-webhook-timestamp": str(timestamp),
        "x-webhook-signature": compute_signature(SECRET, str(timestamp), raw_body),
    }


@pytest.fixture
def cache(clock) -> ResultCache:
    cache = ResultCache(clock=clock)
    cache.put(
        ORDER_ID,
        VerificationResult(
            order_id=ORDER_ID,
            order_status="ACTIVE",
            payment_status=PaymentStatus.PENDING,
        ),
    )
    return cache


@pytest.fixture
def handler(cache: ResultCache) -> WebhookHandler:
    return WebhookHandler(SignatureVerifier(SECRET, clock=lambda: NOW), cache)


class TestWebhookHandler:
    """Test suite for WebhookHandler."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_payment_success_invalidates_cache(
        self, handler: WebhookHandler, cache: ResultCache
    ) -> None:
        body = webhook_body("PAYMENT_SUCCESS_WEBHOOK", event_time="2024-01-15T10:31:00+05:30")

        ack = await handler.handle(body, signed_headers(body))

        assert ack == {
            "success": True,
            "message": "Webhook processed successfully",
            "event_type": "PAYMENT_SUCCESS_WEBHOOK",
            "order_id": ORDER_ID,
            "action": "cache_invalidated",
        }
        assert ORDER_ID not in cache

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_payment_success_without_cached_entry(self, handler: WebhookHandler) -> None:
        body = webhook_body("PAYMENT_SUCCESS_WEBHOOK", order_id="WX9999999999999")

        ack = await handler.handle(body, signed_headers(body))

        assert ack["success"] is True
        assert ack["action"] == "cache_invalidated"

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event_type", ["PAYMENT_FAILED_WEBHOOK", "PAYMENT_USER_DROPPED_WEBHOOK"]
    )
    async def test_failed_and_dropped_are_logged_only(
        self, handler: WebhookHandler, cache: ResultCache, event_type: str
    ) -> None:
        body = webhook_body(event_type)

        ack = await handler.handle(body, signed_headers(body))

        assert ack["action"] == "logged"
        assert ack["event_type"] == event_type
        assert ORDER_ID in cache

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_event_type_is_acknowledged(
        self, handler: WebhookHandler, cache: ResultCache
    ) -> None:
        body = webhook_body("REFUND_STATUS_WEBHOOK", order_id=None)

        ack = await handler.handle(body, signed_headers(body))

        assert ack["success"] is True
        assert ack["event_type"] == "REFUND_STATUS_WEBHOOK"
        assert ack["action"] == "ignored"
        assert ORDER_ID in cache

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_headers_are_case_insensitive(self, handler: WebhookHandler) -> None:
        body = webhook_body("PAYMENT_FAILED_WEBHOOK")
        headers = {key.upper(): value for key, value in signed_headers(body).items()}

        ack = await handler.handle(body, headers)

        assert ack["success"] is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_signature_rejected_without_mutation(
        self, handler: WebhookHandler, cache: ResultCache
    ) -> None:
        body = webhook_body("PAYMENT_SUCCESS_WEBHOOK")
        headers = signed_headers(body)
        headers["x-webhook-signature"] = compute_signature("wrong_secret", str(NOW), body)

        with pytest.raises(WebhookAuthError, match="Invalid signature"):
            await handler.handle(body, headers)

        assert ORDER_ID in cache

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_headers_rejected(self, handler: WebhookHandler) -> None:
        body = webhook_body("PAYMENT_SUCCESS_WEBHOOK")

        with pytest.raises(WebhookAuthError, match="Missing webhook signature headers"):
            await handler.handle(body, {"x-webhook-timestamp": str(NOW)})

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stale_timestamp_rejected(
        self, handler: WebhookHandler, cache: ResultCache
    ) -> None:
        body = webhook_body("PAYMENT_SUCCESS_WEBHOOK")

        with pytest.raises(WebhookAuthError):
            await handler.handle(body, signed_headers(body, timestamp=NOW - 400))

        assert ORDER_ID in cache

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signed_malformed_json(self, handler: WebhookHandler) -> None:
        body = b'{"type": "PAYMENT_SUCCESS_WEBHOOK", "data": '

        with pytest.raises(WebhookPayloadError) as exc_info:
            await handler.handle(body, signed_headers(body))

        assert exc_info.value.status_code == 500
        assert "Invalid JSON" in exc_info.value.reason

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_known_event_without_order_rejected(
        self, handler: WebhookHandler, cache: ResultCache
    ) -> None:
        body = webhook_body("PAYMENT_SUCCESS_WEBHOOK", order_id=None)

        with pytest.raises(WebhookPayloadError) as exc_info:
            await handler.handle(body, signed_headers(body))

        assert exc_info.value.reason == "Order data is required in webhook"
        assert ORDER_ID in cache

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"[1, 2, 3]",
            b'"just a string"',
            b'{"type": "TEST_WEBHOOK"}',
            b'{"data": {"order": {"order_id": "WX1234567890123"}}}',
            b'{"type": 42, "data": []}',
        ],
    )
    async def test_signed_non_envelope_body_is_acknowledged(
        self, handler: WebhookHandler, cache: ResultCache, body: bytes
    ) -> None:
        ack = await handler.handle(body, signed_headers(body))

        assert ack["success"] is True
        assert ack["message"] == "Webhook processed successfully"
        assert ack["action"] == "ignored"
        assert ORDER_ID in cache

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_known_event_without_data_rejected(self, handler: WebhookHandler) -> None:
        body = b'{"type": "PAYMENT_FAILED_WEBHOOK"}'

        with pytest.raises(WebhookPayloadError) as exc_info:
            await handler.handle(body, signed_headers(body))

        assert exc_info.value.reason == "Order data is required in webhook"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_registered_handler_replaces_default(self, handler: WebhookHandler) -> None:
        custom = AsyncMock(return_value="refund_queued")
        handler.register_handler(WebhookEventType.PAYMENT_FAILED, custom)
        body = webhook_body("PAYMENT_FAILED_WEBHOOK")

        ack = await handler.handle(body, signed_headers(body))

        assert ack["action"] == "refund_queued"
        event = custom.await_args.args[0]
        assert event.order_id == ORDER_ID
        assert event.order_status == "PAID"
        assert event.raw_body == body


class TestWebhookEventType:
    """Test suite for WebhookEventType."""

    @pytest.mark.unit
    def test_parse(self) -> None:
        assert WebhookEventType.parse("PAYMENT_SUCCESS_WEBHOOK") == WebhookEventType.PAYMENT_SUCCESS
        assert WebhookEventType.parse("SOMETHING_NEW") == WebhookEventType.UNKNOWN
        assert WebhookEventType.parse(None) == WebhookEventType.UNKNOWN
