"""
Prometheus metrics for the mail queue, registered in the global REGISTRY.
Simply import this module at app startup.
"""

from prometheus_client import Counter, Gauge, Histogram


# --- Buffer / drain metrics ---

QUEUE_ENQUEUED_TOTAL = Counter(
    "mail_queue_enqueued_total",
    "Total number of items appended to the buffer",
    ["queue"],
)

QUEUE_BUFFER_SIZE = Gauge(
    "mail_queue_buffer_size",
    "Items currently waiting in the buffer",
    ["queue"],
)

QUEUE_DRAIN_PASSES_TOTAL = Counter(
    "mail_queue_drain_passes_total",
    "Total number of drain passes (one batch each)",
    ["queue"],
)

QUEUE_BATCH_SIZE = Histogram(
    "mail_queue_batch_size",
    "Items removed per drain pass",
    ["queue"],
    buckets=[1, 5, 10, 25, 50, 75, 100, 250, 500],
)

# --- Delivery metrics ---

DELIVERY_ATTEMPTS_TOTAL = Counter(
    "mail_delivery_attempts_total",
    "Total delivery attempts",
    ["outcome"],
)

DELIVERY_OUTCOMES_TOTAL = Counter(
    "mail_delivery_outcomes_total",
    "Terminal delivery outcomes per item",
    ["state"],
)

DELIVERY_LATENCY_MS = Histogram(
    "mail_delivery_latency_ms",
    "Latency of one delivery attempt in milliseconds",
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000],
)


class MetricsRegistry:
    """Centralized metrics registry for queue components."""

    queue_enqueued_total = QUEUE_ENQUEUED_TOTAL
    queue_buffer_size = QUEUE_BUFFER_SIZE
    queue_drain_passes_total = QUEUE_DRAIN_PASSES_TOTAL
    queue_batch_size = QUEUE_BATCH_SIZE
    delivery_attempts_total = DELIVERY_ATTEMPTS_TOTAL
    delivery_outcomes_total = DELIVERY_OUTCOMES_TOTAL
    delivery_latency_ms = DELIVERY_LATENCY_MS


# Singleton instance
metrics_registry = MetricsRegistry()
