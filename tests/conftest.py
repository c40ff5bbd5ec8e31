"""Pytest fixtures for testing"""

import pytest
from datetime import datetime
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from member_finance.api.main import create_app
from member_finance.infrastructure.database.models import Base, Member
from member_finance.infrastructure.database.repositories import MemberRepository
from member_finance.infrastructure.database.session import get_db
from member_finance.domain.models import Loan, LoanStatus, Role, Transaction, TransactionType


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def _create(db: Session, name: str, email: str, role: str) -> Member:
    member = MemberRepository(db).create_member(name=name, email=email, phone="0917-000-0000", role=role)
    db.commit()
    return member


@pytest.fixture
def admin(db: Session) -> Member:
    return _create(db, "Gabriel Reyes", "admin@example.org", Role.ADMIN)


@pytest.fixture
def officer(db: Session) -> Member:
    return _create(db, "Maria Santos", "maria@example.org", Role.OFFICER)


@pytest.fixture
def member(db: Session) -> Member:
    return _create(db, "Juan dela Cruz", "juan@example.org", Role.MEMBER)


@pytest.fixture
def admin_headers(admin: Member) -> dict:
    return {"X-User-Id": admin.id}


@pytest.fixture
def officer_headers(officer: Member) -> dict:
    return {"X-User-Id": officer.id}


@pytest.fixture
def member_headers(member: Member) -> dict:
    return {"X-User-Id": member.id}


def make_loan(
    status: str = LoanStatus.PENDING,
    amount: str = "20000",
    interest_rate: str = "12",
    term_months: int = 12,
    monthly_payment: str = "1866.67",
    total_due: str = "22400.00",
    start_date: datetime | None = None,
    loan_id: str = "loan-1",
) -> Loan:
    """Domain loan with sensible defaults for unit tests"""
    return Loan(
        id=loan_id,
        user_id="member-1",
        amount=Decimal(amount),
        interest_rate=Decimal(interest_rate),
        term_months=term_months,
        monthly_payment=Decimal(monthly_payment),
        total_due=Decimal(total_due),
        status=status,
        purpose="Sari-sari store inventory",
        applied_at=datetime(2024, 1, 10, 9, 0),
        start_date=start_date,
    )


def make_txn(
    txn_type: str,
    amount: str,
    created_at: datetime,
    txn_id: int = 1,
    loan_id: str | None = None,
    user_id: str = "member-1",
) -> Transaction:
    return Transaction(
        id=txn_id,
        user_id=user_id,
        type=txn_type,
        amount=Decimal(amount),
        description="",
        recorded_by_id="officer-1",
        created_at=created_at,
        loan_id=loan_id,
    )


@pytest.fixture
def savings_history() -> list[Transaction]:
    """Member ledger with deposits, a withdrawal and loan activity"""
    return [
        make_txn(TransactionType.DEPOSIT, "5000", datetime(2024, 1, 5), txn_id=1),
        make_txn(TransactionType.DEPOSIT, "2500", datetime(2024, 2, 5), txn_id=2),
        make_txn(TransactionType.WITHDRAWAL, "1500", datetime(2024, 2, 20), txn_id=3),
        make_txn(TransactionType.LOAN_RELEASE, "20000", datetime(2024, 2, 21), txn_id=4, loan_id="loan-1"),
        make_txn(TransactionType.LOAN_PAYMENT, "1866.67", datetime(2024, 3, 21), txn_id=5, loan_id="loan-1"),
    ]
