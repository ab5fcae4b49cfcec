"""
Prometheus metrics for the payment gateway.

Tracks:
- Verification requests by outcome
- Result cache lookups and size
- Throttle and API rate-limit rejections
- Payment processor calls
- Webhook events
"""
from prometheus_client import Counter, Gauge, Histogram

# Verification metrics
verification_requests_total = Counter(
    "verification_requests_total",
    "Total payment verification requests",
    ["outcome"],  # success, cached, invalid, rate_limited, not_found, upstream_failure
)

verification_duration_seconds = Histogram(
    "verification_duration_seconds",
    "Payment verification duration in seconds",
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# Cache metrics
verification_cache_lookups_total = Counter(
    "verification_cache_lookups_total",
    "Total verification cache lookups",
    ["result"],  # hit, miss
)

verification_cache_entries = Gauge(
    "verification_cache_entries",
    "Number of entries in the verification cache",
)

cache_sweep_evictions_total = Counter(
    "cache_sweep_evictions_total",
    "Entries removed by maintenance sweeps",
    ["store"],  # result_cache, throttle
)

# Throttle metrics
throttle_rejections_total = Counter(
    "throttle_rejections_total",
    "Total requests rejected by a throttle",
    ["limiter"],  # verification, general, payment, webhook
)

# Processor API metrics
processor_api_requests_total = Counter(
    "processor_api_requests_total",
    "Total payment processor API requests",
    ["operation", "status"],
)

processor_api_duration_seconds = Histogram(
    "processor_api_duration_seconds",
    "Payment processor API call duration in seconds",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, 30.0),
)

# Webhook metrics
webhook_events_received_total = Counter(
    "webhook_events_received_total",
    "Total webhook events received",
    ["event_type"],
)

webhook_events_processed_total = Counter(
    "webhook_events_processed_total",
    "Total webhook events processed",
    ["event_type", "status"],  # acknowledged, rejected, malformed
)

webhook_processing_duration_seconds = Histogram(
    "webhook_processing_duration_seconds",
    "Webhook processing duration in seconds",
    ["event_type"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0),
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_verification(outcome: str, duration_seconds: float) -> None:
        """Record a verification request."""
        verification_requests_total.labels(outcome=outcome).inc()
        verification_duration_seconds.observe(duration_seconds)

    @staticmethod
    def record_cache_lookup(hit: bool) -> None:
        """Record a verification cache lookup."""
        verification_cache_lookups_total.labels(result="hit" if hit else "miss").inc()

    @staticmethod
    def set_cache_size(size: int) -> None:
        """Set the current cache size."""
        verification_cache_entries.set(size)

    @staticmethod
    def record_sweep(store: str, removed: int) -> None:
        """Record entries evicted by a sweep."""
        if removed:
            cache_sweep_evictions_total.labels(store=store).inc(removed)

    @staticmethod
    def record_throttle_rejection(limiter: str) -> None:
        """Record a throttle rejection."""
        throttle_rejections_total.labels(limiter=limiter).inc()

    @staticmethod
    def record_processor_call(operation: str, status: str, duration_seconds: float) -> None:
        """Record a payment processor API call."""
        processor_api_requests_total.labels(operation=operation, status=status).inc()
        processor_api_duration_seconds.labels(operation=operation).observe(duration_seconds)

    @staticmethod
    def record_webhook_event(event_type: str, status: str, duration_seconds: float) -> None:
        """Record webhook event processing."""
        webhook_events_received_total.labels(event_type=event_type).inc()
        webhook_events_processed_total.labels(event_type=event_type, status=status).inc()
        webhook_processing_duration_seconds.labels(event_type=event_type).observe(
            duration_seconds
        )


# Export singleton instance
metrics = MetricsCollector()
