"""Ledger aggregation - balances derived from the append-only transaction log"""

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from member_finance.domain.models import (
    Loan,
    LoanStatus,
    MonthlyCollections,
    StatementLine,
    Transaction,
    TransactionTotals,
    TransactionType,
)

ZERO = Decimal("0")


def chronological(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Sort by created_at, ties broken by insertion order (id)"""
    return sorted(transactions, key=lambda t: (t.created_at, t.id if t.id is not None else 0))


def sum_by_type(transactions: Iterable[Transaction], txn_type: str) -> Decimal:
    return sum((t.amount for t in transactions if t.type == txn_type), ZERO)


def savings_balance(transactions: Iterable[Transaction]) -> Decimal:
    """
    Deposits minus withdrawals for one member.

    No floor at zero: a member who withdrew more than deposited shows a
    negative balance.
    """
    transactions = list(transactions)
    return sum_by_type(transactions, TransactionType.DEPOSIT) - sum_by_type(
        transactions, TransactionType.WITHDRAWAL
    )


def total_paid(transactions: Iterable[Transaction], loan_id: str) -> Decimal:
    """Sum of LOAN_PAYMENT entries recorded against loan_id"""
    return sum(
        (t.amount for t in transactions if t.type == TransactionType.LOAN_PAYMENT and t.loan_id == loan_id),
        ZERO,
    )


def outstanding(loan: Loan, transactions: Iterable[Transaction]) -> Decimal:
    """Remaining amount owed on a loan, never below zero"""
    return max(ZERO, loan.total_due - total_paid(transactions, loan.id))


def total_outstanding(loans: Iterable[Loan], transactions: Iterable[Transaction]) -> Decimal:
    """Outstanding summed over ACTIVE loans, each floored at zero"""
    transactions = list(transactions)
    return sum(
        (outstanding(loan, transactions) for loan in loans if loan.status == LoanStatus.ACTIVE),
        ZERO,
    )


def monthly_collections(
    transactions: Iterable[Transaction],
    period_start: datetime,
    period_end: Optional[datetime] = None,
) -> Decimal:
    """Deposits plus loan payments with created_at inside [period_start, period_end]"""
    return sum(
        (
            t.amount
            for t in transactions
            if t.type in (TransactionType.DEPOSIT, TransactionType.LOAN_PAYMENT)
            and t.created_at >= period_start
            and (period_end is None or t.created_at <= period_end)
        ),
        ZERO,
    )


def transaction_totals(transactions: Iterable[Transaction]) -> TransactionTotals:
    transactions = list(transactions)
    return TransactionTotals(
        deposits=sum_by_type(transactions, TransactionType.DEPOSIT),
        withdrawals=sum_by_type(transactions, TransactionType.WITHDRAWAL),
        loan_payments=sum_by_type(transactions, TransactionType.LOAN_PAYMENT),
        loan_releases=sum_by_type(transactions, TransactionType.LOAN_RELEASE),
    )


def collections_by_month(transactions: Iterable[Transaction]) -> List[MonthlyCollections]:
    """
    Bucket ledger totals by calendar month.

    Returns:
        One MonthlyCollections per month that has any entry, ascending by month
    """
    field_by_type = {
        TransactionType.DEPOSIT: "deposits",
        TransactionType.LOAN_PAYMENT: "loan_payments",
        TransactionType.WITHDRAWAL: "withdrawals",
        TransactionType.LOAN_RELEASE: "loan_releases",
    }
    months: Dict[str, MonthlyCollections] = OrderedDict()

    for txn in chronological(transactions):
        key = f"{txn.created_at.year}-{txn.created_at.month:02d}"
        if key not in months:
            months[key] = MonthlyCollections(
                month=key, deposits=ZERO, loan_payments=ZERO, withdrawals=ZERO, loan_releases=ZERO
            )
        field = field_by_type.get(txn.type)
        if field:
            bucket = months[key]
            setattr(bucket, field, getattr(bucket, field) + txn.amount)

    return [months[key] for key in sorted(months)]


def running_balances(transactions: Iterable[Transaction]) -> List[StatementLine]:
    """
    Statement lines in chronological order with the savings balance after each.

    Loan releases and loan payments appear on the statement but do not move
    the savings balance.
    """
    balance = ZERO
    lines = []
    for txn in chronological(transactions):
        if txn.type == TransactionType.DEPOSIT:
            balance += txn.amount
        elif txn.type == TransactionType.WITHDRAWAL:
            balance -= txn.amount
        lines.append(StatementLine(transaction=txn, running_balance=balance))
    return lines
