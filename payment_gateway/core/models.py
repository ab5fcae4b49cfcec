"""
Domain types for payment verification.
"""
import copy
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class OrderStatus(str, Enum):
    """Order statuses the gateway interprets. Others pass through as strings."""

    ACTIVE = "ACTIVE"
    PAID = "PAID"
    EXPIRED = "EXPIRED"


class PaymentStatus(str, Enum):
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    FAILED = "FAILED"

    @classmethod
    def from_order_status(cls, order_status: Optional[str]) -> "PaymentStatus":
        """PAID -> SUCCESS, ACTIVE -> PENDING, anything else -> FAILED."""
        if order_status == OrderStatus.PAID.value:
            return cls.SUCCESS
        if order_status == OrderStatus.ACTIVE.value:
            return cls.PENDING
        return cls.FAILED


class TTLClass(str, Enum):
    """Cache lifetime classes: regular verifications vs confirmed payments."""

    VERIFICATION = "verification"
    CONFIRMED_PAID = "confirmed_paid"


@dataclass
class VerificationResult:
    """Normalized outcome of verifying one order against the processor."""

    order_id: str
    order_status: str
    payment_status: PaymentStatus
    order_amount: Any = None
    order_currency: Optional[str] = None
    customer_details: Optional[Dict[str, Any]] = None
    order_data: Dict[str, Any] = field(default_factory=dict)
    payment_details: Any = None
    verified_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cached: bool = False
    cache_age_seconds: Optional[float] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.SUCCESS

    def copy(self, **changes: Any) -> "VerificationResult":
        """Deep copy, so callers never share mutable state with the cache."""
        clone = copy.deepcopy(self)
        for name, value in changes.items():
            setattr(clone, name, value)
        return clone

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["payment_status"] = self.payment_status.value
        data["verified_at"] = self.verified_at.isoformat()
        if not self.cached:
            data.pop("cache_age_seconds")
        return data
