"""Data access layer for members, loans, ledger entries and settings"""

from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple, Type
from sqlalchemy import or_
from sqlalchemy.orm import Session
from member_finance.infrastructure.database.models import Member, LoanRecord, TransactionRecord, SettingRecord
from member_finance.domain.models import Loan, LoanStatus, LoanTerms, Role, Transaction, Transition, round_money
from member_finance.domain.exceptions import ConflictError, DomainException, InvalidTransitionError
from member_finance.utils.date_utils import as_naive_utc


def loan_to_domain(record: LoanRecord) -> Loan:
    return Loan(
        id=record.id,
        user_id=record.user_id,
        amount=record.amount,
        interest_rate=record.interest_rate,
        term_months=record.term_months,
        monthly_payment=record.monthly_payment,
        total_due=record.total_due,
        status=record.status,
        purpose=record.purpose,
        applied_at=as_naive_utc(record.applied_at),
        approved_by_id=record.approved_by_id,
        approved_at=as_naive_utc(record.approved_at),
        start_date=as_naive_utc(record.start_date),
    )


def transaction_to_domain(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=record.id,
        user_id=record.user_id,
        type=record.type,
        amount=record.amount,
        description=record.description,
        recorded_by_id=record.recorded_by_id,
        created_at=as_naive_utc(record.created_at),
        loan_id=record.loan_id,
    )


class MemberRepository:
    """Repository for members and staff"""

    def __init__(self, db: Session):
        self.db = db

    def create_member(
        self,
        name: str,
        email: str,
        phone: str = "",
        address: str = "",
        role: str = Role.MEMBER,
    ) -> Member:
        """Register a member; emails are unique"""
        if self.get_by_email(email) is not None:
            raise ConflictError("A member with this email already exists")

        member = Member(name=name, email=email, phone=phone or "", address=address or "", role=role)
        self.db.add(member)
        self.db.flush()
        return member

    def get(self, member_id: str) -> Optional[Member]:
        return self.db.query(Member).filter(Member.id == member_id).first()

    def get_by_email(self, email: str) -> Optional[Member]:
        return self.db.query(Member).filter(Member.email == email).first()

    def list_members(self, query: str = "") -> List[Member]:
        """Members (role MEMBER) ordered by name, optionally searched by name/email/phone"""
        q = self.db.query(Member).filter(Member.role == Role.MEMBER)
        if query:
            q = q.filter(
                or_(
                    Member.name.contains(query, autoescape=True),
                    Member.email.contains(query, autoescape=True),
                    Member.phone.contains(query, autoescape=True),
                )
            )
        return q.order_by(Member.name.asc()).all()

    def count_active_members(self) -> int:
        return self.db.query(Member).filter(Member.role == Role.MEMBER, Member.active.is_(True)).count()


class LoanRepository:
    """Repository for loans and their status transitions"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(
        self,
        user_id: str,
        amount,
        interest_rate,
        term_months: int,
        terms: LoanTerms,
        purpose: str,
        applied_at: datetime,
    ) -> LoanRecord:
        """Persist a PENDING loan with its calculated terms rounded to cents"""
        rounded = terms.quantized()
        record = LoanRecord(
            user_id=user_id,
            amount=round_money(amount),
            interest_rate=interest_rate,
            term_months=term_months,
            monthly_payment=rounded.monthly_payment,
            total_due=rounded.total_due,
            status=LoanStatus.PENDING,
            purpose=purpose or "",
            applied_at=applied_at,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get(self, loan_id: str) -> Optional[LoanRecord]:
        return self.db.query(LoanRecord).filter(LoanRecord.id == loan_id).first()

    def list_loans(self, status: Optional[str] = None) -> List[LoanRecord]:
        """Loans newest application first"""
        q = self.db.query(LoanRecord)
        if status:
            q = q.filter(LoanRecord.status == status)
        return q.order_by(LoanRecord.applied_at.desc()).all()

    def list_by_user(self, user_id: str) -> List[LoanRecord]:
        return (
            self.db.query(LoanRecord)
            .filter(LoanRecord.user_id == user_id)
            .order_by(LoanRecord.applied_at.desc())
            .all()
        )

    def save_transition(
        self,
        transition: Transition,
        expected_status: str,
        conflict_error: Type[DomainException] = InvalidTransitionError,
    ) -> Tuple[LoanRecord, List[TransactionRecord]]:
        """
        Apply a lifecycle transition and append its ledger entries in the current
        database transaction.

        The status write is conditional on the row still being in
        expected_status, so of two concurrent approvals only one matches and
        only one release entry is written.

        Raises:
            conflict_error: the loan left expected_status in the meantime
        """
        loan = transition.loan
        updated = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.id == loan.id, LoanRecord.status == expected_status)
            .update(
                {
                    LoanRecord.status: loan.status,
                    LoanRecord.approved_by_id: loan.approved_by_id,
                    LoanRecord.approved_at: loan.approved_at,
                    LoanRecord.start_date: loan.start_date,
                },
                synchronize_session="fetch",
            )
        )
        if updated != 1:
            raise conflict_error(f"Loan {loan.id} is no longer {expected_status}")

        ledger = TransactionRepository(self.db)
        entries = [ledger.append(txn) for txn in transition.transactions]

        self.db.flush()
        return self.get(loan.id), entries


class TransactionRepository:
    """Repository for the append-only ledger"""

    def __init__(self, db: Session):
        self.db = db

    def append(self, txn: Transaction) -> TransactionRecord:
        """Insert a ledger entry; existing entries are never updated"""
        record = TransactionRecord(
            user_id=txn.user_id,
            type=txn.type,
            amount=round_money(txn.amount),
            description=txn.description or "",
            loan_id=txn.loan_id,
            recorded_by_id=txn.recorded_by_id,
            created_at=txn.created_at,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def search(
        self,
        query: str = "",
        txn_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[TransactionRecord]:
        """Filtered ledger, newest first"""
        q = self.db.query(TransactionRecord).join(Member, TransactionRecord.user_id == Member.id)
        if start is not None:
            q = q.filter(TransactionRecord.created_at >= start)
        if end is not None:
            q = q.filter(TransactionRecord.created_at <= end)
        if txn_type:
            q = q.filter(TransactionRecord.type == txn_type)
        if query:
            q = q.filter(
                or_(
                    Member.name.contains(query, autoescape=True),
                    TransactionRecord.description.contains(query, autoescape=True),
                )
            )
        q = q.order_by(TransactionRecord.created_at.desc(), TransactionRecord.id.desc())
        if limit:
            q = q.limit(limit)
        return q.all()

    def for_user(self, user_id: str) -> List[TransactionRecord]:
        return (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.user_id == user_id)
            .order_by(TransactionRecord.created_at.desc(), TransactionRecord.id.desc())
            .all()
        )

    def for_loan(self, loan_id: str) -> List[TransactionRecord]:
        return (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.loan_id == loan_id)
            .order_by(TransactionRecord.created_at.desc(), TransactionRecord.id.desc())
            .all()
        )


class SettingRepository:
    """Repository for persisted policy overrides"""

    def __init__(self, db: Session):
        self.db = db

    def overrides(self) -> Dict[str, str]:
        return {row.key: row.value for row in self.db.query(SettingRecord).all()}

    def upsert(self, updates: Mapping[str, str]) -> None:
        """Write every update in the current database transaction"""
        for key, value in updates.items():
            row = self.db.query(SettingRecord).filter(SettingRecord.key == key).first()
            if row is None:
                self.db.add(SettingRecord(key=key, value=value))
            else:
                row.value = value
        self.db.flush()
