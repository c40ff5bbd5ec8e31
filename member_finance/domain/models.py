"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")
# Rates are stored as Numeric(7, 3)
RATE_STEP = Decimal("0.001")


class TransactionType:
    """Ledger entry kinds"""

    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    LOAN_RELEASE = "LOAN_RELEASE"
    LOAN_PAYMENT = "LOAN_PAYMENT"

    ALL = (DEPOSIT, WITHDRAWAL, LOAN_RELEASE, LOAN_PAYMENT)


class LoanStatus:
    """Loan lifecycle states"""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PAID = "PAID"
    REJECTED = "REJECTED"

    ALL = (PENDING, ACTIVE, PAID, REJECTED)


class Role:
    """Member roles used for page/route gating"""

    ADMIN = "ADMIN"
    OFFICER = "OFFICER"
    MEMBER = "MEMBER"

    STAFF = (ADMIN, OFFICER)


def round_money(value: Decimal) -> Decimal:
    """Round a monetary value half-up to 2 decimal places"""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_rate(value: Decimal) -> Decimal:
    """Round an annual rate half-up to the 3 places the loans table keeps"""
    return Decimal(value).quantize(RATE_STEP, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Transaction:
    """Append-only ledger entry"""

    id: Optional[int]
    user_id: str
    type: str
    amount: Decimal
    description: str
    recorded_by_id: str
    created_at: datetime
    loan_id: Optional[str] = None


@dataclass(frozen=True)
class Loan:
    """Member loan with terms fixed at application time"""

    id: str
    user_id: str
    amount: Decimal
    interest_rate: Decimal
    term_months: int
    monthly_payment: Decimal
    total_due: Decimal
    status: str
    purpose: str
    applied_at: datetime
    approved_by_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    start_date: Optional[datetime] = None


@dataclass(frozen=True)
class LoanTerms:
    """Output of the simple-interest loan calculator"""

    total_interest: Decimal
    total_due: Decimal
    monthly_payment: Decimal

    def quantized(self) -> "LoanTerms":
        """Copy with every figure rounded for persistence"""
        return replace(
            self,
            total_interest=round_money(self.total_interest),
            total_due=round_money(self.total_due),
            monthly_payment=round_money(self.monthly_payment),
        )


@dataclass(frozen=True)
class Transition:
    """Result of a lifecycle operation: the new loan plus ledger entries to append"""

    loan: Loan
    transactions: tuple = ()


@dataclass
class ScheduleEntry:
    """Single period in an amortization schedule"""

    period: int
    due_date: datetime
    amount_due: Decimal
    amount_paid: Decimal
    paid_date: Optional[datetime]
    status: str  # "Paid", "Overdue" or "Upcoming"


@dataclass
class StatementLine:
    """Statement row with the savings balance after the entry"""

    transaction: Transaction
    running_balance: Decimal


@dataclass
class MonthlyCollections:
    """Per-month ledger totals used by the collections report"""

    month: str  # YYYY-MM
    deposits: Decimal
    loan_payments: Decimal
    withdrawals: Decimal
    loan_releases: Decimal

    @property
    def total(self) -> Decimal:
        return self.deposits + self.loan_payments


@dataclass
class TransactionTotals:
    """Per-type sums over a filtered transaction list"""

    deposits: Decimal
    withdrawals: Decimal
    loan_payments: Decimal
    loan_releases: Decimal

    @property
    def net_flow(self) -> Decimal:
        return self.deposits + self.loan_payments - self.withdrawals - self.loan_releases
