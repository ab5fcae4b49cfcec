"""
Pydantic schemas for API request/response models.

Request models are deliberately permissive: field-level rules live in
``payment_gateway.core.validation`` so that every malformed request is
reported in the same ``{"success": false, ...}`` shape.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class VerifyPaymentRequest(BaseModel):
    """Request schema for verifying a payment."""

    orderId: Optional[str] = Field(default=None, description="Storefront order id (WX + 13 digits)")

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={"examples": [{"orderId": "WX1234567890123"}]},
    )


class VerifyPaymentResponse(BaseModel):
    """Response schema for payment verification."""

    success: bool = Field(default=True)
    order_id: str = Field(..., description="Order id")
    order_status: str = Field(..., description="Processor order status (ACTIVE, PAID, ...)")
    payment_status: str = Field(..., description="SUCCESS, PENDING or FAILED")
    order_amount: Optional[Any] = Field(default=None, description="Order amount")
    order_currency: Optional[str] = Field(default=None, description="Currency code")
    customer_details: Optional[Dict[str, Any]] = Field(default=None)
    order_data: Dict[str, Any] = Field(default_factory=dict, description="Raw processor order")
    payment_details: Optional[Any] = Field(default=None, description="Payment method details")
    verified_at: str = Field(..., description="Verification timestamp (ISO 8601)")
    cached: bool = Field(..., description="True when served from the verification cache")
    cache_age_seconds: Optional[float] = Field(default=None, description="Age of cached result")


class CreateOrderRequest(BaseModel):
    """Request schema for creating a payment order."""

    orderId: Optional[str] = None
    orderAmount: Optional[Union[float, str]] = None
    customerName: Optional[str] = None
    customerEmail: Optional[str] = None
    customerPhone: Optional[str] = None
    wallpaperName: Optional[str] = None
    wallpaperId: Optional[Union[str, int]] = None
    returnUrl: Optional[str] = None
    notifyUrl: Optional[str] = None

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "examples": [
                {
                    "orderId": "WX1234567890123",
                    "orderAmount": 199,
                    "customerName": "Asha Rao",
                    "customerEmail": "asha@example.com",
                    "customerPhone": "9876543210",
                    "wallpaperName": "Aurora",
                    "wallpaperId": "wp_42",
                    "returnUrl": "https://www.example.store/payment/return",
                }
            ]
        },
    )


class CreateOrderResponse(BaseModel):
    """Response schema for order creation."""

    success: bool = Field(default=True)
    order_id: str = Field(..., description="Order id")
    payment_session_id: str = Field(..., description="Session id for the checkout SDK")
    order_status: Optional[str] = Field(default=None, description="Processor order status")
    cashfree_order_id: Optional[Union[str, int]] = Field(default=None)


class OrderStatusResponse(BaseModel):
    """Response schema for live order status."""

    success: bool = Field(default=True)
    order_id: str
    order_status: Optional[str] = None
    order_amount: Optional[Any] = None
    order_currency: Optional[str] = None
    created_at: Optional[str] = None
    customer_details: Optional[Dict[str, Any]] = None


class WebhookResponse(BaseModel):
    """Response schema for webhook acknowledgement."""

    success: bool = Field(default=True)
    message: str = Field(..., description="Status message")
    event_type: Optional[str] = Field(default=None, description="Event type as sent")
    order_id: Optional[str] = Field(default=None, description="Order id carried by the event")
    action: Optional[str] = Field(default=None, description="What the gateway did")


class ErrorResponse(BaseModel):
    """Error body shared by every endpoint."""

    success: bool = Field(default=False)
    error: str
    order_id: Optional[str] = None
    details: Optional[Union[List[Any], Dict[str, Any], str]] = None
    retryAfter: Optional[int] = None


class CacheAdminResponse(BaseModel):
    """Response schema for cache maintenance operations."""

    success: bool = Field(default=True)
    removed: int = Field(..., description="Entries removed")
    remaining: int = Field(..., description="Entries left")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status")
    environment: str
    timestamp: str
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Store sizes and sweeper state")
