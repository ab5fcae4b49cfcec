"""Monitoring and observability modules."""
from .logging import scrub_sensitive_data, setup_logging
from .metrics import metrics

__all__ = ["metrics", "scrub_sensitive_data", "setup_logging"]
