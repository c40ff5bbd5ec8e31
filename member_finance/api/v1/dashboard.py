"""GET /v1/dashboard - organization-wide figures for staff"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from member_finance.api.v1.schemas import DashboardResponse
from member_finance.api.v1.serializers import transaction_response
from member_finance.api.dependencies import require_staff
from member_finance.config import settings
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
from member_finance.domain.models import LoanStatus, TransactionType
from member_finance.utils.date_utils import start_of_month, utcnow

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """
    Headline figures recomputed from the ledger on every call.

    Outstanding uses the same zero floor per loan as the reports.
    """
    txn_repo = TransactionRepository(db)
    records = txn_repo.search()
    entries = [transaction_to_domain(t) for t in records]
    loans = [loan_to_domain(l) for l in LoanRepository(db).list_loans()]

    now = utcnow()

    return DashboardResponse(
        total_members=MemberRepository(db).count_active_members(),
        total_deposits=ledger.sum_by_type(entries, TransactionType.DEPOSIT),
        total_outstanding=ledger.total_outstanding(loans, entries),
        active_loans=sum(1 for l in loans if l.status == LoanStatus.ACTIVE),
        monthly_collections=ledger.monthly_collections(entries, start_of_month(now), now),
        pending_loans=sum(1 for l in loans if l.status == LoanStatus.PENDING),
        recent_transactions=[transaction_response(t) for t in records[: settings.recent_transactions_limit]],
    )
