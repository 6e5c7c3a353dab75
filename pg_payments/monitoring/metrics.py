"""
Prometheus metrics for the payment workflow and history queries.

Tracks:
- Payment workflow outcomes
- PG approval call duration per provider
- Payment attempt status writes
- History query volume
"""
from prometheus_client import Counter, Histogram

# Payment workflow metrics
payment_requests_total = Counter(
    "payment_requests_total",
    "Total number of payment workflows by outcome",
    ["outcome"],  # approved or lower-cased error code
)

# PG metrics
pg_approve_duration_seconds = Histogram(
    "pg_approve_duration_seconds",
    "PG approval call duration in seconds",
    ["provider"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, 15.0),
)

payment_attempts_total = Counter(
    "payment_attempts_total",
    "Payment attempt status writes",
    ["provider", "status"],  # PENDING, APPROVED, FAILED
)

# Query metrics
payment_queries_total = Counter(
    "payment_queries_total",
    "Total payment history queries",
    ["has_cursor"],
)
