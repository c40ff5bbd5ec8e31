"""GET /v1/reports/{report_type} - report data for spreadsheet export"""

from typing import Callable, Dict, List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from member_finance.api.v1.schemas import (
    BalanceReportRow,
    CollectionsReportRow,
    LoanReportRow,
    ReportResponse,
    TransactionReportRow,
)
from member_finance.api.dependencies import require_staff
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
from member_finance.utils.date_utils import utcnow

router = APIRouter()


def transactions_report(db: Session) -> List[TransactionReportRow]:
    """Every ledger entry, newest first"""
    return [
        TransactionReportRow(
            date=t.created_at,
            member=t.member.name,
            type=t.type,
            amount=t.amount,
            description=t.description,
            recorded_by=t.recorded_by.name,
        )
        for t in TransactionRepository(db).search()
    ]


def balances_report(db: Session) -> List[BalanceReportRow]:
    """Savings position of every member, by name"""
    rows = []
    for member in MemberRepository(db).list_members():
        entries = [transaction_to_domain(t) for t in member.transactions]
        rows.append(
            BalanceReportRow(
                name=member.name,
                email=member.email,
                phone=member.phone,
                deposits=ledger.sum_by_type(entries, TransactionType.DEPOSIT),
                withdrawals=ledger.sum_by_type(entries, TransactionType.WITHDRAWAL),
                balance=ledger.savings_balance(entries),
            )
        )
    return rows


def loans_report(db: Session) -> List[LoanReportRow]:
    """Every loan with paid and outstanding figures, newest application first"""
    rows = []
    for record in LoanRepository(db).list_loans():
        loan = loan_to_domain(record)
        entries = [transaction_to_domain(t) for t in record.transactions]
        rows.append(
            LoanReportRow(
                borrower=record.member.name,
                principal=loan.amount,
                rate=loan.interest_rate,
                term=loan.term_months,
                total_due=loan.total_due,
                total_paid=ledger.total_paid(entries, loan.id),
                outstanding=ledger.outstanding(loan, entries),
                status=loan.status,
                purpose=loan.purpose,
                applied_at=loan.applied_at,
            )
        )
    return rows


def collections_report(db: Session) -> List[CollectionsReportRow]:
    """Monthly inflow/outflow totals, oldest month first"""
    entries = [transaction_to_domain(t) for t in TransactionRepository(db).search()]
    return [
        CollectionsReportRow(
            month=m.month,
            deposits=m.deposits,
            loan_payments=m.loan_payments,
            total=m.total,
            withdrawals=m.withdrawals,
            loan_releases=m.loan_releases,
        )
        for m in ledger.collections_by_month(entries)
    ]


REPORTS: Dict[str, Callable[[Session], list]] = {
    "transactions": transactions_report,
    "balances": balances_report,
    "loans": loans_report,
    "collections": collections_report,
}


@router.get("/reports/{report_type}", response_model=ReportResponse)
def get_report(
    report_type: str,
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    builder = REPORTS.get(report_type)
    if builder is None:
        raise HTTPException(status_code=400, detail="Invalid report type")

    return ReportResponse(report=report_type, generated_at=utcnow(), rows=builder(db))
