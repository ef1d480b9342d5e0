"""Prometheus counters for the feed pipeline.

These live outside the API package so the resolver, classifier and fetcher
can record outcomes without importing the web layer.
"""

from prometheus_client import Counter

# Channel feed fetches by outcome (success, failed, cached)
channel_fetches_total = Counter(
    "channel_fetches_total",
    "Total number of channel feed fetches",
    ["status"],
)

# Short classifications by deciding step and result
short_classifications_total = Counter(
    "short_classifications_total",
    "Total number of Short classifications",
    ["method", "result"],
)

# Redis feed cache operations
redis_operations_total = Counter(
    "redis_operations_total",
    "Total number of Redis operations",
    ["operation", "status"],
)


def record_channel_fetch(status: str) -> None:
    """Record one channel feed fetch.

    Args:
        status: Fetch outcome (success, failed, cached)
    """
    channel_fetches_total.labels(status=status).inc()


def record_classification(method: str, is_short: bool) -> None:
    """Record a Short classification decision.

    Args:
        method: Step that decided (basic, no_video_id, shorts_probe, watch_probe, fallthrough)
        is_short: Classification result
    """
    short_classifications_total.labels(
        method=method,
        result="short" if is_short else "video",
    ).inc()


def record_redis_operation(operation: str, status: str = "success") -> None:
    """Record a Redis operation.

    Args:
        operation: Operation type (get, set, ping)
        status: Operation status
    """
    redis_operations_total.labels(operation=operation, status=status).inc()
