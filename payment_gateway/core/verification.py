"""
Payment verification orchestrator.

Each verification runs through:
1. Validate the order id
2. Check the per-(caller, order) throttle
3. Check the result cache
4. On a miss, fetch the order from the processor (once, no retries)
5. Normalize it into a VerificationResult
6. For paid orders, enrich with payment details (best effort)
7. Write the result to the cache and respond
"""
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

from ..integrations.cashfree_client import CashfreeClient, ProcessorError
from ..monitoring.metrics import metrics
from .exceptions import (
    OrderNotFoundError,
    OrderValidationError,
    RateLimitedError,
    UpstreamFailureError,
)
from .models import PaymentStatus, TTLClass, VerificationResult
from .result_cache import ResultCache
from .throttle import RequestThrottle
from .validation import validate_order_id

logger = structlog.get_logger(__name__)


class VerificationService:
    """
    Verifies orders against the payment processor with caching and throttling.

    Concurrent misses for the same order are not deduplicated; both reach
    the processor and the later cache write wins. A result whose fetch
    overlapped an invalidation of that order is returned but not cached.
    """

    def __init__(
        self,
        client: CashfreeClient,
        cache: ResultCache,
        throttle: RequestThrottle,
        enrich_paid_orders: bool = True,
    ):
        """
        Args:
            client: Payment processor client
            cache: Shared verification result cache
            throttle: Shared per-(caller, order) throttle
            enrich_paid_orders: Fetch payment method details for PAID orders
        """
        self.client = client
        self.cache = cache
        self.throttle = throttle
        self.enrich_paid_orders = enrich_paid_orders

    async def verify(self, order_id: Optional[str], caller_key: str) -> VerificationResult:
        """
        Verify the payment state of an order.

        Args:
            order_id: Storefront order id (``WX`` + 13 digits)
            caller_key: Caller identity, normally the client IP

        Returns:
            VerificationResult: Fresh or cached result (see ``cached``)

        Raises:
            OrderValidationError: Missing or malformed order id
            RateLimitedError: Too many calls for this caller and order
            OrderNotFoundError: Processor has no such order
            UpstreamFailureError: Processor call failed or returned garbage
        """
        start_time = time.time()
        outcome = "upstream_failure"
        try:
            errors = validate_order_id(order_id)
            if errors:
                outcome = "invalid"
                raise OrderValidationError(errors[0], errors=errors)

            if not self.throttle.allow(caller_key, order_id):
                outcome = "rate_limited"
                metrics.record_throttle_rejection("verification")
                raise RateLimitedError(
                    "Too many verification requests for this order, please retry shortly",
                    retry_after=self.throttle.retry_after_for(caller_key, order_id),
                    order_id=order_id,
                )

            cached = self.cache.get(order_id)
            metrics.record_cache_lookup(cached is not None)
            if cached is not None:
                outcome = "cached"
                logger.info(
                    "verification_cache_hit",
                    order_id=order_id,
                    cache_age_seconds=cached.cache_age_seconds,
                )
                return cached

            logger.info("verification_cache_miss", order_id=order_id)
            generation = self.cache.generation(order_id)
            order_data = await self._fetch_order(order_id)
            result = self._normalize(order_id, order_data)

            if result.is_paid and self.enrich_paid_orders:
                result.payment_details = await self._fetch_payment_details(order_id)

            ttl_class = TTLClass.CONFIRMED_PAID if result.is_paid else TTLClass.VERIFICATION
            self.cache.put(order_id, result, ttl_class, generation=generation)
            metrics.set_cache_size(len(self.cache))

            outcome = "success"
            logger.info(
                "verification_completed",
                order_id=order_id,
                order_status=result.order_status,
                payment_status=result.payment_status.value,
            )
            return result.copy()

        except OrderNotFoundError:
            outcome = "not_found"
            raise
        finally:
            metrics.record_verification(outcome, time.time() - start_time)

    async def _fetch_order(self, order_id: str) -> Dict[str, Any]:
        try:
            order_data = await self.client.get_order(order_id)
        except ProcessorError as e:
            if e.is_not_found:
                raise OrderNotFoundError(order_id) from e
            logger.error(
                "verification_upstream_failure",
                order_id=order_id,
                error=e.message,
                error_type=e.error_type.value,
            )
            raise UpstreamFailureError(
                e.message,
                order_id=order_id,
                details=e.payload,
                upstream_status=e.status_code,
            ) from e

        if not isinstance(order_data, dict) or not order_data.get("order_status"):
            logger.error("verification_malformed_order", order_id=order_id)
            raise UpstreamFailureError(
                "Invalid response from payment processor",
                order_id=order_id,
                details=order_data,
            )
        return order_data

    async def _fetch_payment_details(self, order_id: str) -> Any:
        """Best effort: a failure here is logged and the details are omitted."""
        try:
            return await self.client.get_order_payments(order_id)
        except ProcessorError as e:
            logger.warning(
                "payment_details_unavailable",
                order_id=order_id,
                error=e.message,
            )
            return None

    @staticmethod
    def _normalize(order_id: str, order_data: Dict[str, Any]) -> VerificationResult:
        order_status = str(order_data["order_status"])
        return VerificationResult(
            order_id=order_id,
            order_status=order_status,
            payment_status=PaymentStatus.from_order_status(order_status),
            order_amount=order_data.get("order_amount"),
            order_currency=order_data.get("order_currency"),
            customer_details=order_data.get("customer_details"),
            order_data=order_data,
            verified_at=datetime.now(timezone.utc),
        )
