"""Member registration, member views, statements and the member's own account"""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from member_finance.api.v1.schemas import (
    AccountResponse,
    MemberCreate,
    MemberDetailResponse,
    MemberListItem,
    MemberResponse,
    StatementLineSchema,
    StatementResponse,
)
from member_finance.api.v1.serializers import loan_response, transaction_response
from member_finance.api.dependencies import get_current_actor, get_request_id, require_staff
from member_finance.infrastructure.database.models import Member
from member_finance.infrastructure.database.session import get_db
from member_finance.infrastructure.database.repositories import (
    LoanRepository,
    MemberRepository,
    TransactionRepository,
    loan_to_domain,
    transaction_to_domain,
)
from member_finance.domain import ledger
from member_finance.domain.models import TransactionType
from member_finance.domain.exceptions import ConflictError
from member_finance.utils.date_utils import utcnow

router = APIRouter()


def _get_member_or_404(db: Session, member_id: str) -> Member:
    member = MemberRepository(db).get(member_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


@router.post("/members", response_model=MemberResponse, status_code=201)
def register_member(
    request_body: MemberCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    request_id = get_request_id(request)

    try:
        member = MemberRepository(db).create_member(
            name=request_body.name,
            email=request_body.email,
            phone=request_body.phone,
            address=request_body.address,
        )
        db.commit()

    except ConflictError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    logging.info("Member registered", extra={"request_id": request_id, "member_id": member.id, "actor_id": actor.id})
    return MemberResponse.model_validate(member)


@router.get("/members", response_model=List[MemberListItem])
def list_members(
    q: str = Query("", description="Search name, email or phone"),
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """Members ordered by name with their savings balance"""
    items = []
    for member in MemberRepository(db).list_members(q):
        balance = ledger.savings_balance(transaction_to_domain(t) for t in member.transactions)
        items.append(MemberListItem(**MemberResponse.model_validate(member).model_dump(), savings_balance=balance))
    return items


@router.get("/members/{member_id}", response_model=MemberDetailResponse)
def get_member(
    member_id: str,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    member = _get_member_or_404(db, member_id)
    records = TransactionRepository(db).for_user(member.id)
    entries = [transaction_to_domain(t) for t in records]
    loan_records = LoanRepository(db).list_by_user(member.id)
    loan_entries = [transaction_to_domain(t) for loan in loan_records for t in loan.transactions]

    return MemberDetailResponse(
        member=MemberResponse.model_validate(member),
        savings_balance=ledger.savings_balance(entries),
        total_deposits=ledger.sum_by_type(entries, TransactionType.DEPOSIT),
        total_withdrawals=ledger.sum_by_type(entries, TransactionType.WITHDRAWAL),
        total_loan_payments=ledger.sum_by_type(entries, TransactionType.LOAN_PAYMENT),
        total_outstanding=ledger.total_outstanding((loan_to_domain(l) for l in loan_records), loan_entries),
        loans=[loan_response(loan) for loan in loan_records],
        transactions=[transaction_response(t) for t in records],
    )


@router.get("/members/{member_id}/statement", response_model=StatementResponse)
def get_member_statement(
    member_id: str,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """
    Member statement: savings summary and every ledger entry oldest first with
    the savings balance after each entry.
    """
    member = _get_member_or_404(db, member_id)
    records = TransactionRepository(db).for_user(member.id)
    by_id = {r.id: r for r in records}
    entries = [transaction_to_domain(t) for t in records]

    lines = [
        StatementLineSchema(
            transaction=transaction_response(by_id[line.transaction.id]),
            running_balance=line.running_balance,
        )
        for line in ledger.running_balances(entries)
    ]

    return StatementResponse(
        member=MemberResponse.model_validate(member),
        generated_at=utcnow(),
        savings_balance=ledger.savings_balance(entries),
        total_deposits=ledger.sum_by_type(entries, TransactionType.DEPOSIT),
        transaction_count=len(entries),
        lines=lines,
    )


@router.get("/me", response_model=AccountResponse)
def get_my_account(
    db: Session = Depends(get_db),
    actor: Member = Depends(get_current_actor),
):
    """The acting member's own savings, loans and ledger; open to every role"""
    records = TransactionRepository(db).for_user(actor.id)
    entries = [transaction_to_domain(t) for t in records]
    loan_records = LoanRepository(db).list_by_user(actor.id)

    loan_entries = [transaction_to_domain(t) for loan in loan_records for t in loan.transactions]

    return AccountResponse(
        member=MemberResponse.model_validate(actor),
        savings_balance=ledger.savings_balance(entries),
        total_outstanding=ledger.total_outstanding((loan_to_domain(l) for l in loan_records), loan_entries),
        loans=[loan_response(loan) for loan in loan_records],
        transactions=[transaction_response(t) for t in records],
    )
