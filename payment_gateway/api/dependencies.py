"""
Service wiring.

All shared state (cache, throttles) is created once per application from
the resolved settings and handed to the components that need it.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from ..config import Settings
from ..core.maintenance import MaintenanceSweeper
from ..core.orders import OrderService
from ..core.result_cache import ResultCache
from ..core.signature import SignatureVerifier
from ..core.throttle import FixedWindowThrottle, RequestThrottle
from ..core.verification import VerificationService
from ..integrations.cashfree_client import CashfreeClient
from ..integrations.webhook_handler import WebhookHandler


@dataclass
class ApiRateLimits:
    """Per-IP limiters for the HTTP surface."""

    general: FixedWindowThrottle
    payment: Optional[FixedWindowThrottle]
    webhook: FixedWindowThrottle


@dataclass
class GatewayServices:
    settings: Settings
    client: CashfreeClient
    cache: ResultCache
    throttle: RequestThrottle
    verifier: SignatureVerifier
    verification: VerificationService
    orders: OrderService
    webhooks: WebhookHandler
    rate_limits: ApiRateLimits
    sweeper: MaintenanceSweeper

    async def shutdown(self) -> None:
        await self.sweeper.stop()
        await self.client.close()


def build_services(settings: Settings, client: Optional[CashfreeClient] = None) -> GatewayServices:
    """Create every component from one Settings instance."""
    client = client or CashfreeClient(settings)
    cache = ResultCache(
        verification_ttl=settings.verification_cache_ttl_seconds,
        paid_ttl=settings.paid_cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )
    throttle = RequestThrottle(
        window_seconds=settings.throttle_window_seconds,
        burst=settings.throttle_burst,
        stale_after_seconds=settings.throttle_stale_after_seconds,
    )
    verifier = SignatureVerifier(
        settings.cashfree_secret_key,
        tolerance_seconds=settings.webhook_tolerance_seconds,
    )

    general_window, general_limit = settings.general_rate_limit
    rate_limits = ApiRateLimits(
        general=FixedWindowThrottle(general_window, general_limit),
        # Payment routes get their own stricter limit only in production
        payment=(
            FixedWindowThrottle(
                settings.payment_rate_limit_window_seconds, settings.payment_rate_limit_max
            )
            if settings.is_production
            else None
        ),
        webhook=FixedWindowThrottle(
            settings.webhook_rate_limit_window_seconds, settings.webhook_rate_limit_max
        ),
    )

    stores = {
        "result_cache": cache,
        "throttle": throttle,
        "rate_limit_general": rate_limits.general,
        "rate_limit_webhook": rate_limits.webhook,
    }
    if rate_limits.payment is not None:
        stores["rate_limit_payment"] = rate_limits.payment

    return GatewayServices(
        settings=settings,
        client=client,
        cache=cache,
        throttle=throttle,
        verifier=verifier,
        verification=VerificationService(client, cache, throttle),
        orders=OrderService(client),
        webhooks=WebhookHandler(verifier, cache),
        rate_limits=rate_limits,
        sweeper=MaintenanceSweeper(stores, interval_seconds=settings.sweep_interval_seconds),
    )


def get_services(request: Request) -> GatewayServices:
    return request.app.state.services


def client_ip(request: Request) -> str:
    """Caller identity used for throttling."""
    return request.client.host if request.client else "unknown"
