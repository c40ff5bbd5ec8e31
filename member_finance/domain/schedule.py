"""Amortization schedule generation for member loans"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List

from member_finance.domain.models import Loan, ScheduleEntry, Transaction, TransactionType
from member_finance.domain.ledger import chronological
from member_finance.utils.date_utils import add_months

PAID = "Paid"
OVERDUE = "Overdue"
UPCOMING = "Upcoming"


def build_schedule(loan: Loan, transactions: Iterable[Transaction], now: datetime) -> List[ScheduleEntry]:
    """
    Build the per-period repayment schedule of an approved loan.

    Requirements:
    - One entry per month of the term, due start_date + i months
    - Payments matched FIFO: the i-th payment by time fills period i,
      whatever its amount or date
    - Status is Paid when a payment is matched, else Overdue once now is past
      the due date, else Upcoming

    Args:
        loan: Loan with start_date, term_months and monthly_payment
        transactions: Ledger entries of the loan; only LOAN_PAYMENT is used
        now: Reference time for overdue checks

    Returns:
        Exactly term_months entries, or [] when the loan has no start_date
    """
    if loan.start_date is None:
        return []

    payments = chronological(
        t for t in transactions if t.type == TransactionType.LOAN_PAYMENT and t.loan_id == loan.id
    )

    schedule = []
    for period in range(1, loan.term_months + 1):
        due_date = add_months(loan.start_date, period)
        payment = payments[period - 1] if period <= len(payments) else None

        if payment is not None:
            status = PAID
        elif now > due_date:
            status = OVERDUE
        else:
            status = UPCOMING

        schedule.append(
            ScheduleEntry(
                period=period,
                due_date=due_date,
                amount_due=loan.monthly_payment,
                amount_paid=payment.amount if payment else Decimal("0"),
                paid_date=payment.created_at if payment else None,
                status=status,
            )
        )

    return schedule
