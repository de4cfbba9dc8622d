"""
Prometheus metrics collection for the UBI ledger.

Provides observability into ledger operations, token flow and streams.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Gauge, Histogram, start_http_server

# ============================================================================
# Operation Metrics
# ============================================================================

operation_duration_seconds = Histogram(
    "ubi_operation_duration_seconds",
    "Duration of ledger operations in seconds",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

operations_processed_total = Counter(
    "ubi_operations_processed_total",
    "Total number of ledger operations processed",
    ["operation", "status"],  # status: success, failure
)

events_appended_total = Counter(
    "ubi_events_appended_total",
    "Total number of observability events committed to the store",
    ["event_type"],
)

# ============================================================================
# Token Metrics
# ============================================================================

transferred_amount_total = Counter(
    "ubi_transferred_amount_total",
    "Total token amount moved by transfers (smallest unit)",
)

burned_amount_total = Counter(
    "ubi_burned_amount_total",
    "Total token amount burned (smallest unit)",
)

total_supply = Gauge(
    "ubi_total_supply",
    "Materialized total supply after the last committed operation",
)

# ============================================================================
# Stream Metrics
# ============================================================================

streams_created_total = Counter(
    "ubi_streams_created_total",
    "Total number of streams created",
)

streams_withdrawn_total = Counter(
    "ubi_streams_withdrawn_total",
    "Total number of stream withdrawals",
)

streams_cancelled_total = Counter(
    "ubi_streams_cancelled_total",
    "Total number of streams cancelled",
)

live_streams = Gauge(
    "ubi_live_streams",
    "Number of streams currently stored",
)

# ============================================================================
# Helper Functions
# ============================================================================

P = ParamSpec("P")
R = TypeVar("R")


def track_operation_duration(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to track operation duration and outcome.

    Args:
        operation: Name of the operation being processed
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                duration = time.perf_counter() - start
                operation_duration_seconds.labels(operation=operation).observe(duration)
                operations_processed_total.labels(operation=operation, status=status).inc()

        return wrapper

    return decorator


def start_metrics_server(port: int = 9090) -> None:
    """Start Prometheus metrics HTTP server."""
    start_http_server(port)


def update_ledger_metrics(supply: int, stream_count: int) -> None:
    """Refresh gauges after a committed operation."""
    total_supply.set(supply)
    live_streams.set(stream_count)
