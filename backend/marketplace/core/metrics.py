"""
Metrics instrumentation for the reservation engine.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Booking lifecycle metrics
booking_operations = Counter(
    "marketplace_booking_operations_total",
    "Booking lifecycle operations",
    ["operation", "result"],  # create/confirm/complete/cancel x success/conflict/rejected
)

booking_latency = Histogram(
    "marketplace_booking_operation_seconds",
    "Booking lifecycle operation latency",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

slot_conflicts = Counter(
    "marketplace_slot_conflicts_total",
    "Reservations rejected because a slot was no longer available",
)

holds_released = Counter(
    "marketplace_holds_released_total",
    "Pending bookings cancelled by the hold expiry sweep",
)

refund_intents = Counter(
    "marketplace_refund_intents_total",
    "Refund intents emitted on cancellation of a paid booking",
    ["result"],  # emitted, failed
)


def metrics_endpoint() -> Response:
    """Prometheus scrape response."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_booking_operation(operation: str, result: str) -> None:
    """Result: success, conflict, rejected, noop."""
    booking_operations.labels(operation=operation, result=result).inc()


def record_refund_intent(emitted: bool) -> None:
    refund_intents.labels(result="emitted" if emitted else "failed").inc()
