"""Prometheus metrics for loan activity, ledger volume and request latency"""

from decimal import Decimal
from prometheus_client import Counter, Histogram

# Loan metrics
loan_transition_counter = Counter(
    "member_finance_loan_transition_total",
    "Loan lifecycle actions committed",
    ["action"],  # apply | approve | reject | mark_paid
)

loan_principal_histogram = Histogram(
    "member_finance_loan_principal",
    "Principal of loan applications",
    buckets=[1_000, 5_000, 10_000, 25_000, 50_000, 100_000, 250_000],
)

# Ledger metrics
transaction_counter = Counter(
    "member_finance_transaction_total",
    "Ledger entries appended",
    ["type"],  # DEPOSIT | WITHDRAWAL | LOAN_RELEASE | LOAN_PAYMENT
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_loan_application(principal: Decimal) -> None:
    loan_transition_counter.labels(action="apply").inc()
    loan_principal_histogram.observe(float(principal))


def record_transition(action: str, transaction_types: tuple = ()) -> None:
    """Count a lifecycle action and the ledger entries it produced"""
    loan_transition_counter.labels(action=action).inc()
    for txn_type in transaction_types:
        transaction_counter.labels(type=txn_type).inc()


def record_transaction(txn_type: str) -> None:
    transaction_counter.labels(type=txn_type).inc()
