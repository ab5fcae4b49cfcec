"""
Pytest configuration and fixtures.
"""
import json
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from payment_gateway.config import Settings
from payment_gateway.core.signature import compute_signature

ORDER_ID = "WX1234567890123"
SECRET_KEY = "test_secret_key"


class FakeClock:
    """Manually advanced time source for caches and throttles."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProcessor:
    """
    In-memory stand-in for the Cashfree PG API, served via httpx.MockTransport.
    """

    def __init__(self) -> None:
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, List[Dict[str, Any]]] = {}
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[int] = None

    def add_order(self, order_id: str, order_status: str = "ACTIVE", **fields: Any) -> None:
        self.orders[order_id] = {
            "order_id": order_id,
            "cf_order_id": 2149460581,
            "order_status": order_status,
            "order_amount": 199.0,
            "order_currency": "INR",
            "created_at": "2024-01-15T10:30:00+05:30",
            "customer_details": {
                "customer_id": "asha_example_com",
                "customer_name": "Asha Rao",
                "customer_email": "asha@example.com",
                "customer_phone": "9876543210",
            },
            **fields,
        }

    def order_fetches(self, order_id: str) -> int:
        return sum(
            1
            for request in self.requests
            if request.method == "GET" and request.url.path.endswith(f"/orders/{order_id}")
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"message": "upstream exploded"})

        if request.method == "POST":
            body = json.loads(request.content)
            self.add_order(body["order_id"], order_amount=body["order_amount"])
            return httpx.Response(
                200,
                json={
                    "order_id": body["order_id"],
                    "cf_order_id": 2149460581,
                    "order_status": "ACTIVE",
                    "payment_session_id": f"session_{body['order_id']}",
                },
            )

        parts = request.url.path.split("/orders/", 1)[-1].split("/")
        order = self.orders.get(parts[0])
        if order is None:
            return httpx.Response(
                404, json={"message": "order not found", "code": "order_not_found"}
            )
        if len(parts) > 1 and parts[1] == "payments":
            return httpx.Response(200, json=self.payments.get(parts[0], []))
        return httpx.Response(200, json=order)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        cashfree_app_id="test_app_id",
        cashfree_secret_key=SECRET_KEY,
        app_name="payment-gateway-test",
        app_env="test",
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def processor() -> FakeProcessor:
    return FakeProcessor()


@pytest.fixture
def sign_webhook() -> Callable[..., Dict[str, str]]:
    """Build signed webhook headers for a raw body."""

    def _sign(
        raw_body: bytes,
        timestamp: Optional[str] = None,
        secret: str = SECRET_KEY,
    ) -> Dict[str, str]:
        timestamp = timestamp or str(int(time.time()))
        return {
            "Content-Type": "application/json",
            "x-webhook-timestamp": timestamp,
            "x-webhook-signature": compute_signature(secret, timestamp, raw_body),
        }

    return _sign


@pytest.fixture
def sample_order_data() -> Dict[str, Any]:
    """Sample create-order request body."""
    return {
        "orderId": ORDER_ID,
        "orderAmount": 199,
        "customerName": "Asha Rao",
        "customerEmail": "Asha.Rao@Example.com",
        "customerPhone": "+91 98765 43210",
        "wallpaperName": "Aurora",
        "wallpaperId": "wp_42",
        "returnUrl": "https://www.example.store/payment/return",
        "notifyUrl": "https://api.example.store/api/payment-webhook",
    }


def order_payload(order_status: str = "ACTIVE", order_id: str = ORDER_ID) -> Dict[str, Any]:
    return {
        "order_id": order_id,
        "order_status": order_status,
        "order_amount": 199.0,
        "order_currency": "INR",
        "customer_details": {"customer_name": "Asha Rao"},
    }


@pytest.fixture
def make_order() -> Callable[..., Dict[str, Any]]:
    """Build a processor order payload."""
    return order_payload
