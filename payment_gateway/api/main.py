"""
Main FastAPI application.

Payment gateway API with:
- Cached, throttled payment verification
- Signed webhook handling
- Request ID tracking and structured logging
- Prometheus metrics
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..core.exceptions import PaymentGatewayError, RateLimitedError
from ..integrations.cashfree_client import CashfreeClient
from ..monitoring.logging import setup_logging
from .dependencies import build_services
from .middleware import install_middleware
from .routes import (
    AdminAccessDenied,
    admin_access_denied_handler,
    admin_router,
    monitoring_router,
    payment_router,
)

logger = structlog.get_logger(__name__)


def _install_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(PaymentGatewayError)
    async def gateway_error_handler(request: Request, exc: PaymentGatewayError) -> JSONResponse:
        """Render gateway errors as ``{"success": false, "error": ...}``."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "gateway_error",
            error=exc.message,
            error_type=type(exc).__name__,
            order_id=exc.order_id,
            status_code=exc.status_code,
        )
        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(include_details=not settings.is_production),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
            for error in exc.errors()
        ]
        logger.warning("request_validation_failed", details=details)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Validation failed", "details": details},
        )

    app.add_exception_handler(AdminAccessDenied, admin_access_denied_handler)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled exceptions.
        """
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Internal server error",
                "message": str(exc) if settings.debug else "Something went wrong",
            },
        )


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[CashfreeClient] = None,
) -> FastAPI:
    """
    Build the application.

    Settings are resolved once here and passed to every component.

    Args:
        settings: Settings to use (defaults to environment-loaded settings)
        client: Payment processor client (defaults to a real CashfreeClient)
    """
    settings = settings or get_settings()
    setup_logging(settings)
    services = build_services(settings, client)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
        """
        Application lifespan manager.

        Starts the maintenance sweep and releases the processor client.
        """
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            env=settings.app_env,
            processor_base_url=settings.processor_base_url,
        )
        services.sweeper.start()

        yield

        logger.info("application_shutdown")
        await services.shutdown()

    app = FastAPI(
        title="Payment Gateway",
        description=(
            "Storefront payment gateway for Cashfree. "
            "Features: order creation, cached and throttled payment verification, "
            "signed webhook handling and Prometheus metrics."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.services = services

    install_middleware(app, settings)
    _install_exception_handlers(app, settings)

    app.include_router(payment_router)
    app.include_router(admin_router)
    app.include_router(monitoring_router)

    @app.get("/", tags=["root"])
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": "1.0.0",
            "status": "operational",
            "environment": settings.app_env,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
        }

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "payment_gateway.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
