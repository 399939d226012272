"""
Pytest configuration and fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-attendance-core-tests")
os.environ.setdefault("APP_ENV", "local")

from datetime import date, time
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.main import app
from app.db.base import Base
from app.core.deps import get_db
from app.core.security import create_access_token
from app.services.status_resolver import Thresholds

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    Employee,
    Role,
    AuditLog,
    AttendanceRecord,
    LeaveRequest,
    Holiday,
    GracePeriod,
    Task,
    TimerSession,
    SalaryPolicy,
    SalaryAdjustment,
    SalaryAdvance,
)  # noqa


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def thresholds():
    """Fixed 09:00-18:00 Asia/Kolkata thresholds with no weekly pattern"""
    return Thresholds(
        check_in=time(9, 0),
        check_out=time(18, 0),
        tz=ZoneInfo("Asia/Kolkata"),
        weekly_off_days=(),
    )


def make_employee(db, emp_code, name, role=Role.EMPLOYEE, email=None, active=True):
    employee = Employee(
        emp_code=emp_code,
        name=name,
        email=email,
        role=role.value,
        join_date=date(2024, 1, 1),
        active=active,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def auth_headers(employee):
    """Bearer header for an employee; tokens are issued by the auth service in production"""
    token = create_access_token({"sub": str(employee.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def hr_user(db):
    return make_employee(db, "HR001", "Hema HR", role=Role.HR, email="hr@example.com")


@pytest.fixture
def admin_user(db):
    return make_employee(db, "ADM001", "Arun Admin", role=Role.ADMIN, email="admin@example.com")


@pytest.fixture
def employee(db):
    return make_employee(db, "EMP001", "Ravi Kumar", email="ravi@example.com")
