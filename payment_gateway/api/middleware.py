"""
HTTP middleware.

Registered by :func:`install_middleware` in a fixed order. From the outside
in, every request passes through:

1. CORS
2. RequestContextMiddleware   request id, timing, request/response logging
3. SecurityHeadersMiddleware
4. RequestSizeLimitMiddleware
5. RateLimitMiddleware        per-IP limits on /api
"""
import time
import uuid
from typing import Any, Awaitable, Callable

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import Settings
from ..core.exceptions import RateLimitedError
from ..core.throttle import FixedWindowThrottle
from ..monitoring.metrics import metrics
from .dependencies import client_ip

logger = structlog.get_logger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

PAYMENT_PATHS = ("/api/create-order", "/api/verify-payment")
WEBHOOK_PATH = "/api/payment-webhook"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Add a request ID to every request and log its outcome.

    The response is logged after the downstream call returns, so every
    response (including ones produced by inner middleware) is seen here.
    """

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start_time = time.time()

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        logger.info(
            "request_started",
            client_host=request.client.host if request.client else None,
            origin=request.headers.get("origin"),
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_seconds=time.time() - start_time,
            )
            return response

        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                duration_seconds=time.time() - start_time,
            )
            raise

        finally:
            structlog.contextvars.clear_contextvars()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers, and no-store caching headers on /api responses."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, proxy-revalidate"
            )
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared Content-Length exceeds the limit."""

    def __init__(self, app: Any, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_bytes:
            logger.warning("request_too_large", content_length=int(content_length))
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"success": False, "error": "Request entity too large"},
            )
        return await call_next(request)


def _rejection(limiter: FixedWindowThrottle, key: str, message: str) -> JSONResponse:
    error = RateLimitedError(message, retry_after=limiter.retry_after(key))
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_response(),
        headers={"Retry-After": str(error.retry_after_seconds)},
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP fixed-window limits for the /api surface.

    Independent of the per-(caller, order) verification throttle.
    """

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        path = request.url.path
        if not path.startswith("/api") or request.method == "OPTIONS":
            return await call_next(request)

        limits = request.app.state.services.rate_limits
        ip = client_ip(request)

        if path == WEBHOOK_PATH and not limits.webhook.hit(ip):
            metrics.record_throttle_rejection("webhook")
            logger.warning("rate_limit_exceeded", limiter="webhook", client_ip=ip)
            return _rejection(limits.webhook, ip, "Too many webhook requests from this IP")

        if path in PAYMENT_PATHS and limits.payment is not None and not limits.payment.hit(ip):
            metrics.record_throttle_rejection("payment")
            logger.warning("rate_limit_exceeded", limiter="payment", client_ip=ip)
            return _rejection(
                limits.payment,
                ip,
                "Too many payment requests from this IP, please try again later",
            )

        if not limits.general.hit(ip):
            metrics.record_throttle_rejection("general")
            logger.warning("rate_limit_exceeded", limiter="general", client_ip=ip)
            return _rejection(
                limits.general, ip, "Too many requests from this IP, please try again later"
            )

        return await call_next(request)


def install_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware; the last one added runs first."""
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_origin_regex=None if settings.is_production else r"^http://(localhost|127\.0\.0\.1):\d+$",
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "HEAD", "PATCH"],
        allow_headers=[
            "Content-Type",
            "Authorization",
            "x-webhook-timestamp",
            "x-webhook-signature",
            "Accept",
            "Origin",
            "X-Requested-With",
        ],
    )
