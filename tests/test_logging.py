"""
Unit tests for log scrubbing.
"""
import pytest

from payment_gateway.monitoring.logging import (
    mask_email,
    mask_phone,
    scrub_processor,
    scrub_sensitive_data,
)


class TestScrubbing:
    @pytest.mark.unit
    def test_masks_nested_customer_fields(self) -> None:
        data = {
            "order_id": "WX1234567890123",
            "customer_details": {
                "customer_name": "Asha Rao",
                "customer_email": "asha@example.com",
                "customer_phone": "9876543210",
            },
            "payments": [{"customerPhone": "+919876543210"}],
        }

        scrubbed = scrub_sensitive_data(data)

        assert scrubbed["order_id"] == "WX1234567890123"
        assert scrubbed["customer_details"]["customer_name"] == "Asha Rao"
        assert scrubbed["customer_details"]["customer_email"] == "as***@example.com"
        assert scrubbed["customer_details"]["customer_phone"] == "***3210"
        assert scrubbed["payments"][0]["customerPhone"] == "***3210"

    @pytest.mark.unit
    def test_redacts_secrets(self) -> None:
        scrubbed = scrub_sensitive_data(
            {"x-client-secret": "cfsk_live_123", "secretKey": "abc", "signature": None}
        )

        assert scrubbed == {
            "x-client-secret": "***REDACTED***",
            "secretKey": "***REDACTED***",
            "signature": "***REDACTED***",
        }

    @pytest.mark.unit
    def test_processor_keeps_event_name(self) -> None:
        event_dict = {"event": "webhook_signature_mismatch", "customer_email": "asha@example.com"}

        result = scrub_processor(None, "info", event_dict)

        assert result["event"] == "webhook_signature_mismatch"
        assert result["customer_email"] == "as***@example.com"

    @pytest.mark.unit
    def test_mask_helpers(self) -> None:
        assert mask_email("not-an-email") == "***"
        assert mask_phone("123") == "***"
