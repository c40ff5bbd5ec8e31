"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union


class MemberCreate(BaseModel):
    """Request body for POST /v1/members"""

    name: str = Field(..., min_length=1, description="Full name")
    email: str = Field(..., min_length=3, description="Unique contact email")
    phone: str = ""
    address: str = ""


class MemberResponse(BaseModel):
    """Member profile"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: str
    address: str
    role: str
    active: bool
    joined_at: datetime


class MemberListItem(MemberResponse):
    savings_balance: Decimal


class TransactionCreate(BaseModel):
    """Request body for POST /v1/transactions"""

    user_id: str = Field(..., min_length=1)
    type: str = Field(..., description="DEPOSIT, WITHDRAWAL or LOAN_PAYMENT")
    amount: Decimal = Field(..., gt=0)
    description: str = ""
    loan_id: Optional[str] = None


class TransactionResponse(BaseModel):
    """Single ledger entry"""

    id: int
    user_id: str
    member_name: Optional[str] = None
    type: str
    amount: Decimal
    description: str
    loan_id: Optional[str] = None
    recorded_by_id: str
    recorded_by_name: Optional[str] = None
    created_at: datetime


class TransactionTotalsSchema(BaseModel):
    deposits: Decimal
    withdrawals: Decimal
    loan_payments: Decimal
    loan_releases: Decimal
    net_flow: Decimal


class TransactionListResponse(BaseModel):
    """Response for GET /v1/transactions"""

    period_label: str
    count: int
    totals: TransactionTotalsSchema
    transactions: List[TransactionResponse]


class LoanCreate(BaseModel):
    """Request body for POST /v1/loans"""

    user_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, description="Principal")
    interest_rate: Optional[Decimal] = Field(
        None, ge=0, max_digits=7, decimal_places=3, description="Annual %, defaults to policy rate"
    )
    term_months: int = Field(..., ge=1)
    purpose: str = ""


class LoanQuoteRequest(BaseModel):
    """Request body for POST /v1/loans/quote"""

    amount: Decimal = Field(..., gt=0)
    interest_rate: Optional[Decimal] = Field(None, ge=0, max_digits=7, decimal_places=3)
    term_months: int = Field(..., ge=1)


class LoanQuoteResponse(BaseModel):
    principal: Decimal
    interest_rate: Decimal
    term_months: int
    total_interest: Decimal
    total_due: Decimal
    monthly_payment: Decimal


class PaymentRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/payments"""

    amount: Decimal = Field(..., gt=0)
    description: str = ""


class LoanResponse(BaseModel):
    """Loan with its ledger-derived figures"""

    id: str
    user_id: str
    borrower_name: Optional[str] = None
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
    total_paid: Decimal
    outstanding: Decimal


class ScheduleEntrySchema(BaseModel):
    period: int
    due_date: datetime
    amount_due: Decimal
    amount_paid: Decimal
    paid_date: Optional[datetime] = None
    status: str


class LoanDetailResponse(LoanResponse):
    """Response for GET /v1/loans/{loan_id}"""

    progress_pct: float
    schedule: List[ScheduleEntrySchema]
    transactions: List[TransactionResponse]


class MemberDetailResponse(BaseModel):
    """Response for GET /v1/members/{member_id}"""

    member: MemberResponse
    savings_balance: Decimal
    total_deposits: Decimal
    total_withdrawals: Decimal
    total_loan_payments: Decimal
    total_outstanding: Decimal
    loans: List[LoanResponse]
    transactions: List[TransactionResponse]


class AccountResponse(BaseModel):
    """Response for GET /v1/me"""

    member: MemberResponse
    savings_balance: Decimal
    total_outstanding: Decimal
    loans: List[LoanResponse]
    transactions: List[TransactionResponse]


class StatementLineSchema(BaseModel):
    transaction: TransactionResponse
    running_balance: Decimal


class StatementResponse(BaseModel):
    """Response for GET /v1/members/{member_id}/statement"""

    member: MemberResponse
    generated_at: datetime
    savings_balance: Decimal
    total_deposits: Decimal
    transaction_count: int
    lines: List[StatementLineSchema]


class DashboardResponse(BaseModel):
    """Response for GET /v1/dashboard"""

    total_members: int
    total_deposits: Decimal
    total_outstanding: Decimal
    active_loans: int
    monthly_collections: Decimal
    pending_loans: int
    recent_transactions: List[TransactionResponse]


class TransactionReportRow(BaseModel):
    date: datetime
    member: str
    type: str
    amount: Decimal
    description: str
    recorded_by: str


class BalanceReportRow(BaseModel):
    name: str
    email: str
    phone: str
    deposits: Decimal
    withdrawals: Decimal
    balance: Decimal


class LoanReportRow(BaseModel):
    borrower: str
    principal: Decimal
    rate: Decimal
    term: int
    total_due: Decimal
    total_paid: Decimal
    outstanding: Decimal
    status: str
    purpose: str
    applied_at: datetime


class CollectionsReportRow(BaseModel):
    month: str
    deposits: Decimal
    loan_payments: Decimal
    total: Decimal
    withdrawals: Decimal
    loan_releases: Decimal


class ReportResponse(BaseModel):
    """Response for GET /v1/reports/{report_type}"""

    report: str
    generated_at: datetime
    rows: List[Union[TransactionReportRow, BalanceReportRow, LoanReportRow, CollectionsReportRow]]
