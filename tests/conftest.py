import pytest
import os
from datetime import date, datetime

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["APP_TIMEZONE"] = "Asia/Taipei"

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.core.clock import CivilClock, get_clock
from app.database import Base, get_db
from app.main import app


class FixedClock(CivilClock):
    """CivilClock pinned to a given civil wall-clock time."""

    def __init__(self, when: datetime):
        super().__init__()
        self.set(when)

    def set(self, when: datetime) -> None:
        if when.tzinfo is None:
            when = when.replace(tzinfo=self.tz)
        self._now = when.astimezone(self.tz)

    def now(self) -> datetime:
        return self._now


@pytest.fixture(scope="function")
def db_session():
    """A fresh in-memory database per test. Services commit, so there is no outer transaction to roll back."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def clock():
    return FixedClock(datetime(2026, 2, 13, 9, 0, 0))


@pytest.fixture(scope="function")
def make_employee(db_session):
    """Factory for employees; defaults to a monthly staff member onboarded 2024-03-01."""
    from app.models.employee import Employee, EmployeeRole, SalaryType
    from app.services import auth as auth_service

    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        n = counter["n"]
        values = {
            "email": f"employee{n}@example.com",
            "hashed_password": auth_service.get_password_hash("Password123!"),
            "display_name": f"Employee {n}",
            "employee_code": f"E{n:03d}",
            "role": EmployeeRole.EMPLOYEE.value,
            "salary_type": SalaryType.MONTHLY.value,
            "salary_amount": 40000.0,
            "onboard_date": date(2024, 3, 1),
        }
        values.update(fields)
        employee = Employee(**values)
        db_session.add(employee)
        db_session.commit()
        db_session.refresh(employee)
        return employee

    return _make


@pytest.fixture(scope="function")
def employee(make_employee):
    return make_employee(email="staff@example.com", display_name="Staff")


@pytest.fixture(scope="function")
def manager(make_employee):
    from app.models.employee import EmployeeRole
    return make_employee(
        email="manager@example.com",
        display_name="Manager",
        role=EmployeeRole.MANAGER.value,
        salary_amount=65000.0,
        onboard_date=date(2019, 5, 20),
    )


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens."""
    from app.services.auth import create_access_token

    def _get_token(user):
        return create_access_token(data={
            "sub": user.email,
            "role": user.role,
            "employee_id": user.id,
        })
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _headers


@pytest.fixture(scope="function")
def client(db_session, clock):
    """TestClient bound to the test database session and the fixed civil clock."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
