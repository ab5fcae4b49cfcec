"""
Input validation for storefront requests.

Order ids are externally assigned by the storefront and always look like
``WX`` followed by 13 digits, e.g. ``WX1234567890123``.
"""
import re
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

ORDER_ID_PATTERN = re.compile(r"WX[0-9]{13}")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"[6-9][0-9]{9}")

MAX_ORDER_AMOUNT = 500000  # INR

REQUIRED_ORDER_FIELDS = (
    "orderId",
    "orderAmount",
    "customerName",
    "customerEmail",
    "customerPhone",
    "returnUrl",
)


def is_valid_order_id(order_id: Any) -> bool:
    return isinstance(order_id, str) and bool(ORDER_ID_PATTERN.fullmatch(order_id))


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def normalize_phone(phone: str) -> str:
    """Strip whitespace and a leading +91 country code."""
    cleaned = re.sub(r"\s+", "", phone)
    if cleaned.startswith("+91"):
        cleaned = cleaned[3:]
    return cleaned


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.fullmatch(normalize_phone(phone)))


def parse_amount(amount: Any) -> Optional[float]:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return None
    if value != value:  # NaN
        return None
    return value


def is_valid_amount(amount: Any) -> bool:
    value = parse_amount(amount)
    return value is not None and 0 < value <= MAX_ORDER_AMOUNT


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def validate_order_id(order_id: Any) -> List[str]:
    """
    Validate an order id for payment verification.

    Returns:
        List[str]: Validation errors, empty when the id is well formed
    """
    if _is_blank(order_id):
        return ["Order ID is required"]
    if not is_valid_order_id(order_id):
        return ["Invalid order ID format. Should be WX followed by 13 digits"]
    return []


def validate_order_data(data: Mapping[str, Any]) -> List[str]:
    """
    Validate a create-order request.

    Args:
        data: Request body as sent by the storefront (camelCase keys)

    Returns:
        List[str]: Validation errors, empty when the request is valid
    """
    errors: List[str] = []

    for field in REQUIRED_ORDER_FIELDS:
        if _is_blank(data.get(field)):
            errors.append(f"{field} is required")

    order_id = data.get("orderId")
    if not _is_blank(order_id) and not is_valid_order_id(order_id):
        errors.append("Invalid order ID format. Should be WX followed by 13 digits")

    amount = data.get("orderAmount")
    if not _is_blank(amount) and not is_valid_amount(amount):
        errors.append("Invalid order amount. Should be between 1 and 500000 INR")

    email = data.get("customerEmail")
    if not _is_blank(email) and not is_valid_email(str(email)):
        errors.append("Invalid email format")

    phone = data.get("customerPhone")
    if not _is_blank(phone) and not is_valid_phone(str(phone)):
        errors.append("Invalid phone number. Should be 10 digits starting with 6-9")

    name = data.get("customerName")
    if not _is_blank(name) and len(str(name).strip()) < 2:
        errors.append("Customer name should be at least 2 characters long")

    return_url = data.get("returnUrl")
    if not _is_blank(return_url) and not is_valid_url(str(return_url)):
        errors.append("Invalid return URL format")

    return errors


def sanitize_customer_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Trim and normalize the customer fields of a create-order request."""
    return {
        "customerName": str(data.get("customerName") or "").strip()[:100],
        "customerEmail": str(data.get("customerEmail") or "").strip().lower(),
        "customerPhone": normalize_phone(str(data.get("customerPhone") or "")),
        "orderId": str(data.get("orderId") or "").strip(),
        "orderAmount": parse_amount(data.get("orderAmount")) or 0.0,
    }
