"""
Prometheus metrics for bookings, sessions, and database operations.

This module defines all Prometheus metrics used throughout the application for
observability and monitoring. Metrics are exposed via the /metrics endpoint for
scraping by Prometheus.

Example:
    >>> from hotel_booking.metrics import bookings_total
    >>> bookings_total.labels(outcome="created").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Booking Metrics
# =============================================================================

bookings_total = Counter(
    "hotel_bookings_total",
    "Booking creation attempts by outcome",
    ["outcome"],
)
"""
Counter for booking creation attempts.

Labels:
    outcome: created, room_unavailable, not_found, conflict, validation_error
"""

booking_transitions = Counter(
    "hotel_booking_transitions_total",
    "Booking status transitions applied",
    ["from_status", "to_status"],
)

# =============================================================================
# Session Metrics
# =============================================================================

token_operations = Counter(
    "hotel_token_operations_total",
    "Token service operations by outcome",
    ["operation", "outcome"],
)
"""
Counter for token operations.

Labels:
    operation: issue, rotate, revoke, verify
    outcome: success or the error code that ended the operation
"""

# =============================================================================
# Database Metrics
# =============================================================================

db_transaction_duration = Histogram(
    "hotel_db_transaction_duration_seconds",
    "Wall time of database transactions in seconds",
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, float("inf")),
)

db_errors = Counter(
    "hotel_db_errors_total",
    "Store errors after translation to the domain taxonomy",
    ["kind"],
)
"""
Counter for translated store errors.

Labels:
    kind: conflict, store_unavailable, internal_error
"""
