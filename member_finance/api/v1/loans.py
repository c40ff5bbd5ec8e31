"""Loan origination, lifecycle and repayment endpoints"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from member_finance.api.v1.schemas import (
    LoanCreate,
    LoanDetailResponse,
    LoanQuoteRequest,
    LoanQuoteResponse,
    LoanResponse,
    PaymentRequest,
    ScheduleEntrySchema,
    TransactionResponse,
)
from member_finance.api.v1.serializers import loan_response, transaction_response
from member_finance.api.dependencies import get_request_id, require_staff
from member_finance.infrastructure.database.models import Member
from member_finance.infrastructure.database.session import get_db
from member_finance.infrastructure.database.repositories import (
    LoanRepository,
    MemberRepository,
    SettingRepository,
    TransactionRepository,
    loan_to_domain,
    transaction_to_domain,
)
from member_finance.domain import lifecycle, ledger
from member_finance.domain.calculator import calculate_loan
from member_finance.domain.models import LoanStatus, round_money, round_rate
from member_finance.domain.policy import resolve_settings, to_policy, validate_loan_request
from member_finance.domain.schedule import build_schedule
from member_finance.domain.exceptions import (
    InvalidLoanStateError,
    InvalidLoanTermsError,
    InvalidTransitionError,
    ValidationError,
)
from member_finance.infrastructure.observability.metrics import (
    record_loan_application,
    record_transaction,
    record_transition,
)
from member_finance.infrastructure.observability.logging import log_loan_transition, log_transaction_recorded
from member_finance.utils.date_utils import utcnow

router = APIRouter()


def _get_loan_or_404(repo: LoanRepository, loan_id: str):
    record = repo.get(loan_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Loan not found")
    return record


@router.post("/loans", response_model=LoanResponse, status_code=201)
def create_loan(
    request_body: LoanCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """
    Open a PENDING loan application for a member.

    Flow:
    1. Resolve policy settings (persisted overrides over defaults)
    2. Check amount and term against policy bounds
    3. Derive total due and monthly payment with the simple-interest calculator
    4. Persist the loan with rounded figures
    """
    request_id = get_request_id(request)

    if MemberRepository(db).get(request_body.user_id) is None:
        raise HTTPException(status_code=404, detail="Member not found")

    try:
        policy = to_policy(resolve_settings(SettingRepository(db).overrides()))
        rate = round_rate(
            request_body.interest_rate if request_body.interest_rate is not None else policy.default_interest_rate
        )

        validate_loan_request(policy, request_body.amount, request_body.term_months)
        terms = calculate_loan(request_body.amount, rate, request_body.term_months)

        record = LoanRepository(db).create_loan(
            user_id=request_body.user_id,
            amount=request_body.amount,
            interest_rate=rate,
            term_months=request_body.term_months,
            terms=terms,
            purpose=request_body.purpose,
            applied_at=utcnow(),
        )
        db.commit()

    except (ValidationError, InvalidLoanTermsError) as e:
        db.rollback()
        logging.warning(f"Loan application rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_loan_application(request_body.amount)
    log_loan_transition(request_id, record.id, "apply", "", LoanStatus.PENDING, actor.id)

    return loan_response(record)


@router.post("/loans/quote", response_model=LoanQuoteResponse)
def quote_loan(
    request_body: LoanQuoteRequest,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """Preview loan figures without saving anything (policy bounds not applied)"""
    policy = to_policy(resolve_settings(SettingRepository(db).overrides()))
    rate = round_rate(
        request_body.interest_rate if request_body.interest_rate is not None else policy.default_interest_rate
    )

    try:
        terms = calculate_loan(request_body.amount, rate, request_body.term_months).quantized()
    except InvalidLoanTermsError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return LoanQuoteResponse(
        principal=request_body.amount,
        interest_rate=rate,
        term_months=request_body.term_months,
        total_interest=terms.total_interest,
        total_due=terms.total_due,
        monthly_payment=terms.monthly_payment,
    )


@router.get("/loans", response_model=List[LoanResponse])
def list_loans(
    status: Optional[str] = Query(None, description="Filter by loan status"),
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    if status and status not in LoanStatus.ALL:
        raise HTTPException(status_code=400, detail="Invalid loan status")

    return [loan_response(record) for record in LoanRepository(db).list_loans(status)]


@router.get("/loans/{loan_id}", response_model=LoanDetailResponse)
def get_loan(
    loan_id: str,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """
    Loan detail with repayment progress and amortization schedule.

    Returns:
        Loan figures, ledger entries newest first, and one schedule row per
        month of the term once the loan is active
    """
    repo = LoanRepository(db)
    record = _get_loan_or_404(repo, loan_id)
    entries = TransactionRepository(db).for_loan(loan_id)

    loan = loan_to_domain(record)
    domain_entries = [transaction_to_domain(t) for t in entries]
    paid = ledger.total_paid(domain_entries, loan.id)
    progress_pct = min(100.0, float(paid / loan.total_due * 100)) if loan.total_due > 0 else 0.0

    schedule = [
        ScheduleEntrySchema(
            period=entry.period,
            due_date=entry.due_date,
            amount_due=entry.amount_due,
            amount_paid=entry.amount_paid,
            paid_date=entry.paid_date,
            status=entry.status,
        )
        for entry in build_schedule(loan, domain_entries, utcnow())
    ]

    summary = loan_response(record, entries)
    return LoanDetailResponse(
        **summary.model_dump(),
        progress_pct=round(progress_pct, 2),
        schedule=schedule,
        transactions=[transaction_response(t) for t in entries],
    )


def _apply_transition(action: str, loan_id: str, db: Session, actor: Member, request_id: str) -> LoanResponse:
    """Run a status transition and commit the status change with its ledger entries"""
    repo = LoanRepository(db)
    record = _get_loan_or_404(repo, loan_id)
    loan = loan_to_domain(record)

    try:
        if action == "approve":
            transition = lifecycle.approve(loan, actor.id, utcnow())
        elif action == "reject":
            transition = lifecycle.reject(loan)
        else:
            transition = lifecycle.mark_paid(loan)

        updated, _ = repo.save_transition(transition, expected_status=loan.status)
        db.commit()

    except InvalidTransitionError as e:
        db.rollback()
        logging.warning(f"Invalid transition: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_transition(action, tuple(t.type for t in transition.transactions))
    log_loan_transition(request_id, loan.id, action, loan.status, transition.loan.status, actor.id)

    return loan_response(updated)


@router.post("/loans/{loan_id}/approve", response_model=LoanResponse)
def approve_loan(
    loan_id: str,
    request: Request,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """Approve a PENDING loan and release the principal to the borrower"""
    return _apply_transition("approve", loan_id, db, actor, get_request_id(request))


@router.post("/loans/{loan_id}/reject", response_model=LoanResponse)
def reject_loan(
    loan_id: str,
    request: Request,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    return _apply_transition("reject", loan_id, db, actor, get_request_id(request))


@router.post("/loans/{loan_id}/mark-paid", response_model=LoanResponse)
def mark_loan_paid(
    loan_id: str,
    request: Request,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """Label an ACTIVE loan as PAID; never happens automatically"""
    return _apply_transition("mark_paid", loan_id, db, actor, get_request_id(request))


@router.post("/loans/{loan_id}/payments", response_model=TransactionResponse, status_code=201)
def record_loan_payment(
    loan_id: str,
    request_body: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """Record a repayment against an ACTIVE loan"""
    request_id = get_request_id(request)
    repo = LoanRepository(db)
    loan = loan_to_domain(_get_loan_or_404(repo, loan_id))

    try:
        transition = lifecycle.record_payment(
            loan, request_body.amount, actor.id, utcnow(), description=request_body.description
        )
        _, entries = repo.save_transition(
            transition, expected_status=LoanStatus.ACTIVE, conflict_error=InvalidLoanStateError
        )
        db.commit()

    except (InvalidLoanStateError, ValidationError) as e:
        db.rollback()
        logging.warning(f"Payment rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    payment = entries[0]
    record_transaction(payment.type)
    log_transaction_recorded(request_id, payment.id, payment.user_id, payment.type, round_money(payment.amount), actor.id)

    return transaction_response(payment)
