"""Loan lifecycle state machine - status transitions and their ledger side effects"""

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, Tuple

from member_finance.domain.models import Loan, LoanStatus, Transaction, TransactionType, Transition
from member_finance.domain.exceptions import InvalidLoanStateError, InvalidTransitionError, ValidationError

# action -> (allowed source status, target status)
TRANSITIONS: Dict[str, Tuple[str, str]] = {
    "approve": (LoanStatus.PENDING, LoanStatus.ACTIVE),
    "reject": (LoanStatus.PENDING, LoanStatus.REJECTED),
    "mark_paid": (LoanStatus.ACTIVE, LoanStatus.PAID),
}


def _check_transition(loan: Loan, action: str) -> str:
    source, target = TRANSITIONS[action]
    if loan.status != source:
        raise InvalidTransitionError(
            f"Cannot {action.replace('_', ' ')} loan {loan.id}: status is {loan.status}, expected {source}"
        )
    return target


def approve(loan: Loan, actor_id: str, now: datetime) -> Transition:
    """
    PENDING -> ACTIVE.

    Stamps approver, approval time and start date, and produces exactly one
    LOAN_RELEASE entry for the principal, owned by the borrower and recorded
    by the approving actor. The caller must persist both together.

    Raises:
        InvalidTransitionError: loan is not PENDING
    """
    target = _check_transition(loan, "approve")

    approved = replace(
        loan,
        status=target,
        approved_by_id=actor_id,
        approved_at=now,
        start_date=now,
    )
    release = Transaction(
        id=None,
        user_id=loan.user_id,
        type=TransactionType.LOAN_RELEASE,
        amount=loan.amount,
        description=f"Loan disbursement - {loan.purpose}",
        recorded_by_id=actor_id,
        created_at=now,
        loan_id=loan.id,
    )
    return Transition(loan=approved, transactions=(release,))


def reject(loan: Loan) -> Transition:
    """PENDING -> REJECTED. Terminal, no ledger entry."""
    target = _check_transition(loan, "reject")
    return Transition(loan=replace(loan, status=target))


def mark_paid(loan: Loan) -> Transition:
    """
    ACTIVE -> PAID by explicit administrative action.

    Nothing flips a loan to PAID automatically, even when payments reach
    total_due.
    """
    target = _check_transition(loan, "mark_paid")
    return Transition(loan=replace(loan, status=target))


def record_payment(
    loan: Loan,
    amount,
    actor_id: str,
    now: datetime,
    description: str = "",
) -> Transition:
    """
    Produce a LOAN_PAYMENT entry against an ACTIVE loan.

    Overpayment is allowed: the running total is not compared to total_due.

    Raises:
        ValidationError: amount is not positive
        InvalidLoanStateError: loan is not ACTIVE
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValidationError(f"Payment amount must be positive, got {amount}")
    if loan.status != LoanStatus.ACTIVE:
        raise InvalidLoanStateError(f"Payments can only be recorded on active loans; loan {loan.id} is {loan.status}")

    payment = Transaction(
        id=None,
        user_id=loan.user_id,
        type=TransactionType.LOAN_PAYMENT,
        amount=amount,
        description=description or "Loan payment",
        recorded_by_id=actor_id,
        created_at=now,
        loan_id=loan.id,
    )
    return Transition(loan=loan, transactions=(payment,))
