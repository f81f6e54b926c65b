"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'ehgezli_booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, full, closed, error
)

booking_transitions = Counter(
    'ehgezli_booking_status_transitions_total',
    'Booking lifecycle transitions',
    ['from_status', 'to_status']
)

# Availability metrics
availability_latency = Histogram(
    'ehgezli_availability_latency_seconds',
    'Time spent computing branch availability for a date',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

branch_searches = Counter(
    'ehgezli_branch_searches_total',
    'Branch search requests',
    ['with_location']  # yes, no
)

# Auth metrics
login_attempts = Counter(
    'ehgezli_login_attempts_total',
    'Login attempts',
    ['account_type', 'result']  # user/restaurant, success/failure
)

# Cache metrics
cache_operations = Counter(
    'ehgezli_cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, full, closed, error"""
    booking_attempts.labels(status=status).inc()


def record_transition(from_status: str, to_status: str):
    booking_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_login(account_type: str, success: bool):
    result = "success" if success else "failure"
    login_attempts.labels(account_type=account_type, result=result).inc()


def record_search(with_location: bool):
    branch_searches.labels(with_location="yes" if with_location else "no").inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
