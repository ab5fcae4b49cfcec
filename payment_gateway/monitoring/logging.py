"""
Structured logging configuration.

Uses structlog for JSON-formatted logs with request IDs. Customer PII and
processor credentials are masked before rendering.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from pythonjsonlogger import jsonlogger

from ..config import Settings, get_settings

SENSITIVE_FIELDS = (
    "customerphone",
    "customer_phone",
    "phone",
    "customeremail",
    "customer_email",
    "email",
    "x-client-secret",
    "secretkey",
    "secret",
    "x-webhook-signature",
    "signature",
)


def mask_email(value: str) -> str:
    """Keep the first two characters of the local part and the domain."""
    local, sep, domain = value.partition("@")
    if not sep:
        return "***"
    return f"{local[:2]}***@{domain}"


def mask_phone(value: str) -> str:
    """Keep only the last four digits."""
    digits = "".join(ch for ch in value if ch.isdigit())
    if len(digits) <= 4:
        return "***"
    return f"***{digits[-4:]}"


def _mask_value(key: str, value: Any) -> Any:
    if not isinstance(value, str):
        return "***REDACTED***"
    if "email" in key:
        return mask_email(value)
    if "phone" in key:
        return mask_phone(value)
    return "***REDACTED***"


def scrub_sensitive_data(data: Any) -> Any:
    """
    Recursively mask sensitive fields in a mapping or list.

    Matching is by case-insensitive substring of the key, so both
    ``customer_email`` and ``customerEmail`` are caught.
    """
    if isinstance(data, dict):
        scrubbed = {}
        for key, value in data.items():
            lowered = str(key).lower()
            if any(field in lowered for field in SENSITIVE_FIELDS):
                scrubbed[key] = _mask_value(lowered, value)
            else:
                scrubbed[key] = scrub_sensitive_data(value)
        return scrubbed
    if isinstance(data, list):
        return [scrub_sensitive_data(item) for item in data]
    return data


def scrub_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor applying :func:`scrub_sensitive_data`."""
    event = event_dict.pop("event", None)
    scrubbed = scrub_sensitive_data(event_dict)
    if event is not None:
        scrubbed["event"] = event
    return scrubbed


def _app_context_processor(settings: Settings) -> Any:
    def add_app_context(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Add application context to log events.

        Args:
            logger: Logger instance
            method_name: Log method name
            event_dict: Event dictionary

        Returns:
            dict[str, Any]: Enhanced event dictionary
        """
        event_dict["app_name"] = settings.app_name
        event_dict["app_env"] = settings.app_env
        return event_dict

    return add_app_context


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging with JSON formatter.

    Sets up:
    - JSON-formatted logs
    - Request ID tracking via contextvars
    - PII / secret scrubbing
    """
    settings = settings or get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _app_context_processor(settings),
            scrub_processor,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    json_handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        rename_fields={
            "timestamp": "@timestamp",
            "level": "level",
            "name": "logger",
            "message": "message",
        },
    )
    json_handler.setFormatter(formatter)
    root_logger.addHandler(json_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger = structlog.get_logger(__name__)
    logger.info(
        "logging_configured",
        log_level=settings.log_level,
        app_env=settings.app_env,
    )
