"""
Unit tests for order creation and status lookup.
"""
from typing import Any, Dict
from unittest.mock import AsyncMock

import pytest

from payment_gateway.core.exceptions import (
    OrderNotFoundError,
    OrderValidationError,
    UpstreamFailureError,
)
from payment_gateway.core.orders import OrderService
from payment_gateway.integrations.cashfree_client import (
    CashfreeClient,
    ProcessorError,
    ProcessorErrorType,
)

ORDER_ID = "WX1234567890123"


@pytest.fixture
def mock_client() -> AsyncMock:
    client = AsyncMock(spec=CashfreeClient)
    client.create_order.return_value = {
        "order_id": ORDER_ID,
        "cf_order_id": 2149460581,
        "order_status": "ACTIVE",
        "payment_session_id": "session_abc",
    }
    return client


@pytest.fixture
def orders(mock_client: AsyncMock) -> OrderService:
    return OrderService(mock_client)


class TestOrderService:
    """Test suite for OrderService."""

    @pytest.mark.unit
    def test_build_order_payload(self, sample_order_data: Dict[str, Any]) -> None:
        payload = OrderService.build_order_payload(sample_order_data)

        assert payload["order_id"] == ORDER_ID
        assert payload["order_amount"] == 199.0
        assert payload["order_currency"] == "INR"
        assert payload["customer_details"] == {
            "customer_id": "asha_rao_example_com",
            "customer_name": "Asha Rao",
            "customer_email": "asha.rao@example.com",
            "customer_phone": "9876543210",
        }
        assert payload["order_meta"]["payment_methods"] == "cc,dc,nb,upi,paylater,emi"
        assert payload["order_meta"]["return_url"] == sample_order_data["returnUrl"]
        assert payload["order_note"] == "Payment for Aurora (ID: wp_42)"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_order_success(
        self, orders: OrderService, mock_client: AsyncMock, sample_order_data: Dict[str, Any]
    ) -> None:
        result = await orders.create_order(sample_order_data)

        assert result == {
            "success": True,
            "order_id": ORDER_ID,
            "payment_session_id": "session_abc",
            "order_status": "ACTIVE",
            "cashfree_order_id": 2149460581,
        }
        mock_client.create_order.assert_awaited_once()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_order_validation_errors(
        self, orders: OrderService, mock_client: AsyncMock, sample_order_data: Dict[str, Any]
    ) -> None:
        sample_order_data.update(orderAmount=0, customerEmail="not-an-email")
        del sample_order_data["returnUrl"]

        with pytest.raises(OrderValidationError) as exc_info:
            await orders.create_order(sample_order_data)

        assert exc_info.value.message == "Validation failed"
        assert "returnUrl is required" in exc_info.value.errors
        assert "Invalid email format" in exc_info.value.errors
        assert "Invalid order amount. Should be between 1 and 500000 INR" in exc_info.value.errors
        mock_client.create_order.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_order_without_session_id(
        self, orders: OrderService, mock_client: AsyncMock, sample_order_data: Dict[str, Any]
    ) -> None:
        mock_client.create_order.return_value = {"order_id": ORDER_ID}

        with pytest.raises(UpstreamFailureError, match="Invalid response from Cashfree API"):
            await orders.create_order(sample_order_data)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_order_processor_rejection(
        self, orders: OrderService, mock_client: AsyncMock, sample_order_data: Dict[str, Any]
    ) -> None:
        mock_client.create_order.side_effect = ProcessorError(
            "order_id already exists",
            ProcessorErrorType.CLIENT,
            status_code=409,
            payload={"message": "order_id already exists"},
        )

        with pytest.raises(UpstreamFailureError, match="already exists") as exc_info:
            await orders.create_order(sample_order_data)

        assert exc_info.value.upstream_status == 409

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_order_status(self, orders: OrderService, mock_client: AsyncMock) -> None:
        mock_client.get_order.return_value = {
            "order_id": ORDER_ID,
            "order_status": "PAID",
            "order_amount": 199.0,
            "order_currency": "INR",
            "created_at": "2024-01-15T10:30:00+05:30",
            "customer_details": {"customer_name": "Asha Rao"},
        }

        result = await orders.get_order_status(ORDER_ID)

        assert result["success"] is True
        assert result["order_status"] == "PAID"
        assert result["created_at"] == "2024-01-15T10:30:00+05:30"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_order_status_not_found(
        self, orders: OrderService, mock_client: AsyncMock
    ) -> None:
        mock_client.get_order.side_effect = ProcessorError(
            "order not found", ProcessorErrorType.NOT_FOUND, status_code=404
        )

        with pytest.raises(OrderNotFoundError):
            await orders.get_order_status(ORDER_ID)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_order_status_upstream_failure(
        self, orders: OrderService, mock_client: AsyncMock
    ) -> None:
        mock_client.get_order.side_effect = ProcessorError(
            "Payment processor returned 500", ProcessorErrorType.SERVER, status_code=500
        )

        with pytest.raises(UpstreamFailureError, match="Failed to get order status"):
            await orders.get_order_status(ORDER_ID)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_order_status_invalid_id(
        self, orders: OrderService, mock_client: AsyncMock
    ) -> None:
        with pytest.raises(OrderValidationError):
            await orders.get_order_status("12345")

        mock_client.get_order.assert_not_awaited()
