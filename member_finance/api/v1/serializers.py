"""Build response schemas from ORM rows and ledger-derived figures"""

from typing import Iterable

from member_finance.api.v1.schemas import LoanResponse, TransactionResponse
from member_finance.domain import ledger
from member_finance.infrastructure.database.models import LoanRecord, TransactionRecord
from member_finance.infrastructure.database.repositories import loan_to_domain, transaction_to_domain


def transaction_response(record: TransactionRecord) -> TransactionResponse:
    txn = transaction_to_domain(record)
    return TransactionResponse(
        id=txn.id,
        user_id=txn.user_id,
        member_name=record.member.name if record.member else None,
        type=txn.type,
        amount=txn.amount,
        description=txn.description,
        loan_id=txn.loan_id,
        recorded_by_id=txn.recorded_by_id,
        recorded_by_name=record.recorded_by.name if record.recorded_by else None,
        created_at=txn.created_at,
    )


def loan_response(record: LoanRecord, transactions: Iterable[TransactionRecord] | None = None) -> LoanResponse:
    """Loan row plus total paid and outstanding folded from its ledger entries"""
    loan = loan_to_domain(record)
    entries = [transaction_to_domain(t) for t in (record.transactions if transactions is None else transactions)]

    return LoanResponse(
        id=loan.id,
        user_id=loan.user_id,
        borrower_name=record.member.name if record.member else None,
        amount=loan.amount,
        interest_rate=loan.interest_rate,
        term_months=loan.term_months,
        monthly_payment=loan.monthly_payment,
        total_due=loan.total_due,
        status=loan.status,
        purpose=loan.purpose,
        applied_at=loan.applied_at,
        approved_by_id=loan.approved_by_id,
        approved_at=loan.approved_at,
        start_date=loan.start_date,
        total_paid=ledger.total_paid(entries, loan.id),
        outstanding=ledger.outstanding(loan, entries),
    )
