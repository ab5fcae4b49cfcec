"""
API routes for the payment gateway.
"""
import hmac
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..monitoring.metrics import metrics
from .dependencies import GatewayServices, client_ip, get_services
from .schemas import (
    CacheAdminResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    ErrorResponse,
    HealthCheckResponse,
    OrderStatusResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookResponse,
)

logger = structlog.get_logger(__name__)

# Create routers
payment_router = APIRouter(prefix="/api", tags=["payments"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])
monitoring_router = APIRouter(tags=["monitoring"])

ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@payment_router.post(
    "/create-order",
    response_model=CreateOrderResponse,
    responses=ERROR_RESPONSES,
    summary="Create a payment order",
    description="Validate the storefront order and create it with the payment processor",
)
async def create_order(
    request: CreateOrderRequest,
    services: GatewayServices = Depends(get_services),
) -> Dict[str, Any]:
    """Create a payment order and return its checkout session id."""
    return await services.orders.create_order(request.model_dump())


@payment_router.post(
    "/verify-payment",
    response_model=VerifyPaymentResponse,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse}},
    summary="Verify a payment",
    description="Return the processor's view of an order, cached for a short time",
)
async def verify_payment(
    body: VerifyPaymentRequest,
    request: Request,
    services: GatewayServices = Depends(get_services),
) -> Dict[str, Any]:
    """
    Verify the payment state of an order.

    Repeated calls within the cache TTL are answered from the cache and
    flagged ``cached: true``.
    """
    result = await services.verification.verify(body.orderId, client_ip(request))
    return {"success": True, **result.to_dict()}


@payment_router.post(
    "/payment-webhook",
    response_model=WebhookResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Payment processor webhook",
    description="Verify and process a signed webhook from the payment processor",
)
async def payment_webhook(
    request: Request,
    services: GatewayServices = Depends(get_services),
) -> Dict[str, Any]:
    """
    Handle processor webhook events.

    The signature is computed over the raw body, so the body is read
    unparsed.
    """
    raw_body = await request.body()
    return await services.webhooks.handle(raw_body, request.headers)


@payment_router.get(
    "/order-status/{order_id}",
    response_model=OrderStatusResponse,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse}},
    summary="Get live order status",
    description="Fetch an order straight from the processor, bypassing the cache",
)
async def order_status(
    order_id: str,
    services: GatewayServices = Depends(get_services),
) -> Dict[str, Any]:
    return await services.orders.get_order_status(order_id)


class AdminAccessDenied(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def require_admin(
    request: Request,
    services: GatewayServices = Depends(get_services),
) -> None:
    """Guard for the maintenance endpoints."""
    settings = services.settings
    if settings.admin_api_key:
        supplied = request.headers.get(settings.api_key_header, "")
        if not hmac.compare_digest(supplied.encode(), settings.admin_api_key.encode()):
            logger.warning("admin_auth_failed", client_ip=client_ip(request))
            raise AdminAccessDenied(status.HTTP_401_UNAUTHORIZED, "Invalid API key")
    elif settings.is_production:
        raise AdminAccessDenied(status.HTTP_403_FORBIDDEN, "Admin endpoints are disabled")


@admin_router.post(
    "/cache/clear",
    response_model=CacheAdminResponse,
    dependencies=[Depends(require_admin)],
    summary="Clear the verification cache",
)
async def clear_cache(services: GatewayServices = Depends(get_services)) -> Dict[str, Any]:
    removed = services.cache.clear()
    metrics.set_cache_size(0)
    logger.info("admin_cache_cleared", removed=removed)
    return {"success": True, "removed": removed, "remaining": len(services.cache)}


@admin_router.delete(
    "/cache/{order_id}",
    response_model=CacheAdminResponse,
    dependencies=[Depends(require_admin)],
    summary="Drop one cached verification",
)
async def invalidate_cache_entry(
    order_id: str,
    services: GatewayServices = Depends(get_services),
) -> Dict[str, Any]:
    removed = services.cache.invalidate(order_id)
    metrics.set_cache_size(len(services.cache))
    return {"success": True, "removed": int(removed), "remaining": len(services.cache)}


@admin_router.post(
    "/throttle/reset",
    response_model=CacheAdminResponse,
    dependencies=[Depends(require_admin)],
    summary="Reset throttle and rate-limit state",
)
async def reset_throttles(services: GatewayServices = Depends(get_services)) -> Dict[str, Any]:
    limits = services.rate_limits
    removed = services.throttle.reset() + limits.general.reset() + limits.webhook.reset()
    if limits.payment is not None:
        removed += limits.payment.reset()
    logger.info("admin_throttles_reset", removed=removed)
    return {"success": True, "removed": removed, "remaining": len(services.throttle)}


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Report service status and in-memory store sizes",
)
async def health(services: GatewayServices = Depends(get_services)) -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "environment": services.settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "verification_cache_entries": len(services.cache),
            "throttle_keys": len(services.throttle),
            "sweeper_running": services.sweeper.running,
        },
    }


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


async def admin_access_denied_handler(request: Request, exc: AdminAccessDenied) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )
