"""Prometheus metrics for monitoring accrual runs, per-account outcomes and credited interest"""

from decimal import Decimal

from prometheus_client import Counter, Histogram

# Run metrics
run_counter = Counter(
    "accrual_run_total",
    "Total daily interest runs",
    ["outcome"],  # completed | failed | unauthorized
)

run_duration_histogram = Histogram(
    "accrual_run_duration_seconds",
    "Wall-clock time of a full accrual run",
    buckets=[1, 5, 15, 30, 60, 120, 300, 600, 1800],
)

# Account metrics
account_outcome_counter = Counter(
    "accrual_account_total",
    "Accounts handled by accrual runs",
    ["outcome"],  # credited | skipped | failed
)

account_error_counter = Counter(
    "accrual_account_errors_total",
    "Per-account failures by error type",
    ["error_type"],
)

interest_credited_counter = Counter(
    "accrual_interest_credited_total",
    "Interest credited to accounts, in currency units",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_account_credited(amount: Decimal) -> None:
    account_outcome_counter.labels(outcome="credited").inc()
    interest_credited_counter.inc(float(amount))


def record_account_skipped() -> None:
    account_outcome_counter.labels(outcome="skipped").inc()


def record_account_failed(error_type: str) -> None:
    """Record a failed account, bucketed by exception class for alerting"""
    account_outcome_counter.labels(outcome="failed").inc()
    account_error_counter.labels(error_type=error_type).inc()
