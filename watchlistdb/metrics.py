"""Prometheus metrics collection and export.

This module provides Prometheus instrumentation for the WatchlistDB services.

Metric Types:
    Counters (always increase):
        - watchlist_operations_total: Service operations by name and outcome
        - watchlist_errors_total: Errors by type and component
        - tmdb_requests_total: Metadata provider requests by endpoint, status

    Histograms (track distributions):
        - watchlist_operation_duration_seconds: Service operation latency
        - tmdb_request_duration_seconds: Metadata provider latency

Usage:
    ```python
    from watchlistdb.metrics import track_operation

    def mark_as_watched(self, movie_id, actor, rating=None):
        with track_operation("mark_as_watched", actor_id=actor.user_id):
            ...
    ```

    Exposing the metrics endpoint from the gateway:

    ```python
    from watchlistdb.metrics import generate_metrics_output

    body = generate_metrics_output()  # text/plain; version=0.0.4
    ```

References:
    - Prometheus Python Client: https://github.com/prometheus/client_python
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from watchlistdb.logging import log_context, logger

# Custom registry for explicit metric control
registry = CollectorRegistry()

# Latency bucket definitions (in seconds)
OPERATION_LATENCY_BUCKETS = (
    0.001,  # 1ms
    0.005,  # 5ms
    0.01,   # 10ms
    0.05,   # 50ms
    0.1,    # 100ms
    0.5,    # 500ms
    1.0,    # 1s
)

PROVIDER_LATENCY_BUCKETS = (
    0.05,   # 50ms
    0.1,    # 100ms
    0.25,   # 250ms
    0.5,    # 500ms
    1.0,    # 1s
    2.5,    # 2.5s
    5.0,    # 5s
    10.0,   # 10s
)


# ========== COUNTER METRICS ==========

operations_total = Counter(
    "watchlist_operations_total",
    "Total number of service operations",
    labelnames=["operation", "status"],
    registry=registry,
)
"""Counter for service operations.

Labels:
    operation: Service operation (e.g., "add_movie", "follow_user")
    status: "success" or the error outcome ("not_found", "forbidden", ...)
"""

errors_total = Counter(
    "watchlist_errors_total",
    "Total number of errors encountered",
    labelnames=["error_type", "component"],
    registry=registry,
)
"""Counter for errors by exception type and component ("database", "tmdb", ...)."""

tmdb_requests_total = Counter(
    "tmdb_requests_total",
    "Total number of metadata provider requests",
    labelnames=["endpoint", "status"],
    registry=registry,
)


# ========== HISTOGRAM METRICS ==========

operation_duration_seconds = Histogram(
    "watchlist_operation_duration_seconds",
    "Service operation latency in seconds",
    labelnames=["operation"],
    buckets=OPERATION_LATENCY_BUCKETS,
    registry=registry,
)

tmdb_request_duration_seconds = Histogram(
    "tmdb_request_duration_seconds",
    "Metadata provider request latency in seconds",
    labelnames=["endpoint"],
    buckets=PROVIDER_LATENCY_BUCKETS,
    registry=registry,
)


# ========== HELPER FUNCTIONS ==========


@contextmanager
def track_operation(operation: str, actor_id: int | None = None) -> Iterator[None]:
    """Count and time one service operation, with its log context bound.

    The status label is "success", or the ``outcome`` of the raised
    WatchlistDB error ("not_found", "forbidden", "bad_input", "internal").
    Unknown exceptions are counted as "internal". Exceptions always propagate.
    Log lines emitted inside the block carry ``operation`` and ``actor_id``.

    Args:
        operation: Operation name used as the metric label
        actor_id: Id of the user performing the operation, if known
    """
    start = time.perf_counter()
    status = "success"
    with log_context(operation=operation, actor_id=actor_id):
        try:
            yield
        except Exception as exc:
            outcome = getattr(exc, "outcome", None)
            status = str(outcome) if outcome is not None else "internal"
            raise
        finally:
            elapsed = time.perf_counter() - start
            operations_total.labels(operation=operation, status=status).inc()
            operation_duration_seconds.labels(operation=operation).observe(elapsed)
            if status != "success":
                logger.debug(f"⚠️ {operation} ended with {status} after {elapsed:.3f}s")


def generate_metrics_output() -> bytes:
    """Generate Prometheus metrics output in text exposition format.

    Returns:
        Metrics output as bytes (suitable for an HTTP response body)
    """
    return generate_latest(registry)


__all__ = [
    "registry",
    "operations_total",
    "errors_total",
    "tmdb_requests_total",
    "operation_duration_seconds",
    "tmdb_request_duration_seconds",
    "track_operation",
    "generate_metrics_output",
    "OPERATION_LATENCY_BUCKETS",
    "PROVIDER_LATENCY_BUCKETS",
]
