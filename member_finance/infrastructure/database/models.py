"""SQLAlchemy ORM models for members, loans, the transaction ledger and settings"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Numeric, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class Member(Base):
    """Organization member; staff roles share the table"""

    __tablename__ = "members"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(Text, nullable=False, index=True)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(Text, nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    role = Column(String(16), nullable=False, default="MEMBER")
    active = Column(Boolean, nullable=False, default=True)
    joined_at = Column(DateTime, nullable=False, server_default=func.now())

    loans = relationship("LoanRecord", back_populates="member", foreign_keys="LoanRecord.user_id")
    transactions = relationship(
        "TransactionRecord", back_populates="member", foreign_keys="TransactionRecord.user_id"
    )


class LoanRecord(Base):
    """Loan with terms fixed at application time"""

    __tablename__ = "loans"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("members.id"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(7, 3), nullable=False)
    term_months = Column(Integer, nullable=False)
    monthly_payment = Column(Numeric(14, 2), nullable=False)
    total_due = Column(Numeric(14, 2), nullable=False)
    status = Column(String(16), nullable=False, default="PENDING", index=True)
    purpose = Column(Text, nullable=False, default="")
    approved_by_id = Column(String(36), ForeignKey("members.id"), nullable=True)
    applied_at = Column(DateTime, nullable=False)
    approved_at = Column(DateTime, nullable=True)
    start_date = Column(DateTime, nullable=True)

    member = relationship("Member", back_populates="loans", foreign_keys=[user_id])
    approved_by = relationship("Member", foreign_keys=[approved_by_id])
    transactions = relationship("TransactionRecord", back_populates="loan")


class TransactionRecord(Base):
    """Append-only ledger entry; the integer id preserves insertion order"""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("members.id"), nullable=False, index=True)
    type = Column(String(16), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=False, default="")
    loan_id = Column(String(36), ForeignKey("loans.id"), nullable=True, index=True)
    recorded_by_id = Column(String(36), ForeignKey("members.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)

    member = relationship("Member", back_populates="transactions", foreign_keys=[user_id])
    recorded_by = relationship("Member", foreign_keys=[recorded_by_id])
    loan = relationship("LoanRecord", back_populates="transactions")


class SettingRecord(Base):
    """Persisted override of a loan policy default"""

    __tablename__ = "settings"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
