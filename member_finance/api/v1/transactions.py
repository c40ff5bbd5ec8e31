"""Ledger endpoints: record deposits, withdrawals and loan payments; filtered listing"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from member_finance.api.v1.schemas import (
    TransactionCreate,
    TransactionListResponse,
    TransactionResponse,
    TransactionTotalsSchema,
)
from member_finance.api.v1.serializers import transaction_response
from member_finance.api.dependencies import get_request_id, require_staff
from member_finance.infrastructure.database.models import Member
from member_finance.infrastructure.database.session import get_db
from member_finance.infrastructure.database.repositories import (
    LoanRepository,
    MemberRepository,
    TransactionRepository,
    loan_to_domain,
    transaction_to_domain,
)
from member_finance.domain import lifecycle, ledger
from member_finance.domain.models import LoanStatus, Transaction, TransactionType
from member_finance.domain.exceptions import InvalidLoanStateError, NotFoundError, ValidationError
from member_finance.infrastructure.observability.metrics import record_transaction
from member_finance.infrastructure.observability.logging import log_transaction_recorded
from member_finance.utils.date_utils import period_range, utcnow

router = APIRouter()


def _build_entry(request_body: TransactionCreate, db: Session, actor: Member):
    """
    Turn a ledger request into (loan, transition-or-entry).

    Savings entries are appended directly; loan payments go through the loan
    state machine; releases only come from approving a loan.
    """
    if request_body.type == TransactionType.LOAN_RELEASE:
        raise ValidationError("Loan releases are recorded by approving a loan")

    if request_body.type != TransactionType.LOAN_PAYMENT:
        return None, Transaction(
            id=None,
            user_id=request_body.user_id,
            type=request_body.type,
            amount=request_body.amount,
            description=request_body.description,
            recorded_by_id=actor.id,
            created_at=utcnow(),
            loan_id=None,
        )

    if not request_body.loan_id:
        raise ValidationError("Loan payments need a loan_id")

    record = LoanRepository(db).get(request_body.loan_id)
    if record is None:
        raise NotFoundError("Loan not found")
    if record.user_id != request_body.user_id:
        raise ValidationError("Loan does not belong to this member")

    loan = loan_to_domain(record)
    return loan, lifecycle.record_payment(
        loan, request_body.amount, actor.id, utcnow(), description=request_body.description
    )


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    request_body: TransactionCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """Append one entry to a member's ledger"""
    request_id = get_request_id(request)

    if request_body.type not in TransactionType.ALL:
        raise HTTPException(status_code=400, detail="Invalid transaction type")
    if MemberRepository(db).get(request_body.user_id) is None:
        raise HTTPException(status_code=404, detail="Member not found")

    try:
        loan, entry = _build_entry(request_body, db, actor)

        if loan is None:
            record = TransactionRepository(db).append(entry)
        else:
            _, entries = LoanRepository(db).save_transition(
                entry, expected_status=LoanStatus.ACTIVE, conflict_error=InvalidLoanStateError
            )
            record = entries[0]
        db.commit()

    except (ValidationError, InvalidLoanStateError) as e:
        db.rollback()
        logging.warning(f"Transaction rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_transaction(record.type)
    log_transaction_recorded(request_id, record.id, record.user_id, record.type, record.amount, actor.id)

    return transaction_response(record)


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    q: str = Query("", description="Search member name or description"),
    type: Optional[str] = Query(None, description="Transaction type"),
    period: Optional[str] = Query(None, description="week | all"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """
    Ledger entries newest first, filtered by search text, type and period.

    Returns:
        Entries plus per-type totals and net flow over the filtered set
    """
    if type and type not in TransactionType.ALL:
        raise HTTPException(status_code=400, detail="Invalid transaction type")

    start, end, label = period_range(period, month, year)
    records = TransactionRepository(db).search(query=q, txn_type=type, start=start, end=end)
    totals = ledger.transaction_totals(transaction_to_domain(r) for r in records)

    return TransactionListResponse(
        period_label=label,
        count=len(records),
        totals=TransactionTotalsSchema(
            deposits=totals.deposits,
            withdrawals=totals.withdrawals,
            loan_payments=totals.loan_payments,
            loan_releases=totals.loan_releases,
            net_flow=totals.net_flow,
        ),
        transactions=[transaction_response(r) for r in records],
    )
