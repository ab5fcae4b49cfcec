"""
Cashfree PG API client.

Implements:
- Authenticated order creation and lookup
- Per-request unique request ids
- Classification of processor errors (not found / upstream failure)

Calls are made exactly once; retrying is left to the caller.
"""
import time
import uuid
from enum import Enum
from typing import Any, Dict, Optional

import httpx
import structlog

from ..config import Settings
from ..monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class ProcessorErrorType(Enum):
    """Classification of processor errors."""

    NOT_FOUND = "not_found"
    CLIENT = "client"  # 4xx other than 404
    SERVER = "server"  # 5xx
    TRANSPORT = "transport"  # timeouts, connection errors
    MALFORMED = "malformed"  # 2xx with an unusable body


class ProcessorError(Exception):
    """Base exception for payment processor errors."""

    def __init__(
        self,
        message: str,
        error_type: ProcessorErrorType,
        status_code: Optional[int] = None,
        payload: Any = None,
    ):
        """
        Initialize processor error.

        Args:
            message: Error message, taken from the processor response when present
            error_type: Classification of error
            status_code: HTTP status returned by the processor, if any
            payload: Decoded response body, if any
        """
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.payload = payload

    @property
    def is_not_found(self) -> bool:
        return self.error_type == ProcessorErrorType.NOT_FOUND


def _error_message(payload: Any, default: str) -> str:
    if isinstance(payload, dict):
        return payload.get("message") or payload.get("error_description") or default
    return default


class CashfreeClient:
    """
    Async wrapper around the Cashfree PG REST API.

    The same secret that authenticates these calls also signs inbound
    webhooks; see :class:`payment_gateway.core.signature.SignatureVerifier`.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize Cashfree client.

        Args:
            settings: Resolved application settings
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = settings.processor_base_url
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "x-api-version": settings.cashfree_api_version,
                "x-client-id": settings.cashfree_app_id,
                "x-client-secret": settings.cashfree_secret_key,
            },
            timeout=settings.upstream_timeout_seconds,
            transport=transport,
        )

        logger.info(
            "cashfree_client_initialized",
            base_url=self.base_url,
            api_version=settings.cashfree_api_version,
        )

    async def _request(
        self, operation: str, method: str, path: str, json: Optional[Dict[str, Any]] = None
    ) -> Any:
        request_id = str(uuid.uuid4())
        start_time = time.time()

        try:
            response = await self._client.request(
                method, path, json=json, headers={"x-request-id": request_id}
            )
        except httpx.TimeoutException as e:
            metrics.record_processor_call(operation, "timeout", time.time() - start_time)
            logger.error("cashfree_request_timeout", operation=operation, request_id=request_id)
            raise ProcessorError(
                f"Payment processor timed out: {e}", ProcessorErrorType.TRANSPORT
            ) from e
        except httpx.HTTPError as e:
            metrics.record_processor_call(operation, "transport_error", time.time() - start_time)
            logger.error(
                "cashfree_transport_error",
                operation=operation,
                request_id=request_id,
                error=str(e),
            )
            raise ProcessorError(
                f"Payment processor unreachable: {e}", ProcessorErrorType.TRANSPORT
            ) from e

        duration = time.time() - start_time
        metrics.record_processor_call(operation, str(response.status_code), duration)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code == 404:
            logger.info("cashfree_not_found", operation=operation, request_id=request_id)
            raise ProcessorError(
                _error_message(payload, "Order not found"),
                ProcessorErrorType.NOT_FOUND,
                status_code=404,
                payload=payload,
            )

        if response.is_error:
            error_type = (
                ProcessorErrorType.SERVER
                if response.status_code >= 500
                else ProcessorErrorType.CLIENT
            )
            logger.error(
                "cashfree_api_error",
                operation=operation,
                request_id=request_id,
                status_code=response.status_code,
                response=payload,
            )
            raise ProcessorError(
                _error_message(payload, f"Payment processor returned {response.status_code}"),
                error_type,
                status_code=response.status_code,
                payload=payload,
            )

        if not isinstance(payload, (dict, list)):
            logger.error(
                "cashfree_malformed_response",
                operation=operation,
                request_id=request_id,
                status_code=response.status_code,
            )
            raise ProcessorError(
                "Invalid response from payment processor",
                ProcessorErrorType.MALFORMED,
                status_code=response.status_code,
            )

        logger.info(
            "cashfree_api_call_succeeded",
            operation=operation,
            request_id=request_id,
            duration_seconds=duration,
        )
        return payload

    async def create_order(self, order: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a payment order.

        Args:
            order: Order body in Cashfree's snake_case format

        Returns:
            Dict[str, Any]: Created order including payment_session_id
        """
        return await self._request("create_order", "POST", "/orders", json=order)

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        """Fetch the current state of an order."""
        return await self._request("get_order", "GET", f"/orders/{order_id}")

    async def get_order_payments(self, order_id: str) -> Any:
        """Fetch payment attempts (method details) for an order."""
        return await self._request("get_order_payments", "GET", f"/orders/{order_id}/payments")

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()
