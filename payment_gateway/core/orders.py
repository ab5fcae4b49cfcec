"""
Order creation and uncached status lookup.
"""
import re
from typing import Any, Dict, Mapping

import structlog

from ..integrations.cashfree_client import CashfreeClient, ProcessorError
from .exceptions import OrderNotFoundError, OrderValidationError, UpstreamFailureError
from .validation import sanitize_customer_data, validate_order_data, validate_order_id

logger = structlog.get_logger(__name__)

# Valid options: cc, dc, ppc, ccc, emi, paypal, upi, nb, app, paylater, applepay
SUPPORTED_PAYMENT_METHODS = "cc,dc,nb,upi,paylater,emi"
ORDER_CURRENCY = "INR"


class OrderService:
    """Creates processor orders and reads their live status."""

    def __init__(self, client: CashfreeClient):
        self.client = client

    @staticmethod
    def build_order_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Translate a storefront create-order request into Cashfree's format.

        Args:
            data: Validated request body (camelCase keys)

        Returns:
            Dict[str, Any]: Cashfree order body
        """
        customer = sanitize_customer_data(data)
        return {
            "order_id": customer["orderId"],
            "order_amount": customer["orderAmount"],
            "order_currency": ORDER_CURRENCY,
            "customer_details": {
                "customer_id": re.sub(r"[^a-zA-Z0-9]", "_", customer["customerEmail"]),
                "customer_name": customer["customerName"],
                "customer_email": customer["customerEmail"],
                "customer_phone": customer["customerPhone"],
            },
            "order_meta": {
                "return_url": data.get("returnUrl"),
                "notify_url": data.get("notifyUrl"),
                "payment_methods": SUPPORTED_PAYMENT_METHODS,
            },
            "order_note": (
                f"Payment for {data.get('wallpaperName')} (ID: {data.get('wallpaperId')})"
            ),
        }

    async def create_order(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Create a payment order with the processor.

        Raises:
            OrderValidationError: Request failed validation
            UpstreamFailureError: Processor rejected the order or returned no session
        """
        errors = validate_order_data(data)
        if errors:
            raise OrderValidationError("Validation failed", errors=errors)

        payload = self.build_order_payload(data)
        order_id = payload["order_id"]
        logger.info("create_order_request", order_id=order_id, order_amount=payload["order_amount"])

        try:
            response = await self.client.create_order(payload)
        except ProcessorError as e:
            raise UpstreamFailureError(
                e.message, order_id=order_id, details=e.payload, upstream_status=e.status_code
            ) from e

        if not isinstance(response, dict) or not response.get("payment_session_id"):
            logger.error("create_order_missing_session", order_id=order_id)
            raise UpstreamFailureError(
                "Invalid response from Cashfree API", order_id=order_id, details=response
            )

        logger.info(
            "create_order_succeeded",
            order_id=order_id,
            order_status=response.get("order_status"),
        )
        return {
            "success": True,
            "order_id": order_id,
            "payment_session_id": response["payment_session_id"],
            "order_status": response.get("order_status"),
            "cashfree_order_id": response.get("cf_order_id"),
        }

    async def get_order_status(self, order_id: str) -> Dict[str, Any]:
        """Read an order's live status, bypassing the verification cache."""
        errors = validate_order_id(order_id)
        if errors:
            raise OrderValidationError(errors[0], errors=errors, order_id=order_id)

        try:
            order = await self.client.get_order(order_id)
        except ProcessorError as e:
            if e.is_not_found:
                raise OrderNotFoundError(order_id) from e
            raise UpstreamFailureError(
                "Failed to get order status", order_id=order_id, details=e.payload
            ) from e

        if not isinstance(order, dict):
            raise UpstreamFailureError("Failed to get order status", order_id=order_id)

        return {
            "success": True,
            "order_id": order_id,
            "order_status": order.get("order_status"),
            "order_amount": order.get("order_amount"),
            "order_currency": order.get("order_currency"),
            "created_at": order.get("created_at"),
            "customer_details": order.get("customer_details"),
        }
