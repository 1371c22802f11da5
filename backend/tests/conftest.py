from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import leavedesk.models  # noqa: F401
from leavedesk.core.security import create_access_token
from leavedesk.db.base import Base
from leavedesk.db.session import get_db
from leavedesk.main import app
from leavedesk.models.enums import LeaveStatus, LeaveType, Role
from leavedesk.models.leave import LeaveBalance, LeaveRequest
from leavedesk.models.user import User
from leavedesk.services.leave_validation import inclusive_day_count


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def today() -> date:
    return datetime.now(timezone.utc).date()


@pytest.fixture()
def tomorrow(today: date) -> date:
    return today + timedelta(days=1)


def _create_user(db: Session, *, email: str, name: str, role: Role) -> User:
    user = User(email=email, name=name, hashed_password="dummy", role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def employee(db: Session) -> User:
    return _create_user(db, email="employee@example.com", name="Erin Employee", role=Role.EMPLOYEE)


@pytest.fixture()
def other_employee(db: Session) -> User:
    return _create_user(db, email="other@example.com", name="Oscar Other", role=Role.EMPLOYEE)


@pytest.fixture()
def manager(db: Session) -> User:
    return _create_user(db, email="manager@example.com", name="Mia Manager", role=Role.MANAGER)


@pytest.fixture()
def make_balance(db: Session, today: date):
    def _make(
        user: User,
        leave_type: LeaveType = LeaveType.VACATION,
        *,
        total: int = 20,
        used: int = 0,
        year: int | None = None,
    ) -> LeaveBalance:
        balance = LeaveBalance(
            user_id=user.id,
            leave_type=leave_type,
            year=year or today.year,
            total_days=total,
            used_days=used,
            remaining_days=total - used,
        )
        db.add(balance)
        db.commit()
        db.refresh(balance)
        return balance

    return _make


@pytest.fixture()
def make_request(db: Session):
    """Insert a request directly, bypassing the workflow checks."""

    def _make(
        user: User,
        start: date,
        end: date,
        *,
        status: LeaveStatus = LeaveStatus.PENDING,
        leave_type: LeaveType = LeaveType.VACATION,
        reason: str = "Family vacation",
    ) -> LeaveRequest:
        leave = LeaveRequest(
            user_id=user.id,
            leave_type=leave_type,
            start_date=start,
            end_date=end,
            days_requested=inclusive_day_count(start, end),
            reason=reason,
            status=status,
        )
        db.add(leave)
        db.commit()
        db.refresh(leave)
        return leave

    return _make


@pytest.fixture()
def client(db: Session):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token = create_access_token({"sub": user.id})
        return {"Authorization": f"Bearer {token}"}

    return _headers
