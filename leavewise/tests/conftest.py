"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; give them test values first
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-1234")
os.environ.setdefault("APP_ENV", "local")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leavewise.main import app
from leavewise.db.base import Base
from leavewise.core.deps import get_db
from leavewise.core.security import create_access_token, hash_password
from leavewise.models import Department, Employee, Role  # noqa: F401  registers every table
from leavewise.services import balance_ledger
from leavewise.services.transitions import Actor


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


def _drop_all():
    # departments.manager_id and employees.department_id reference each other
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    _drop_all()
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        _drop_all()


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_employee(
    db,
    name,
    email,
    role=Role.EMPLOYEE,
    department_id=None,
    manager_id=None,
    join_date=None,
    password=None,
    active=True,
):
    """Employee with an allocated leave ledger"""
    employee = Employee(
        name=name,
        email=email,
        role=Role(role).value,
        department_id=department_id,
        manager_id=manager_id,
        join_date=join_date or date(2025, 1, 6),
        password_hash=hash_password(password) if password else None,
        active=active,
    )
    db.add(employee)
    db.flush()
    balance_ledger.allocate_entitlements(db, employee)
    db.commit()
    db.refresh(employee)
    return employee


def actor_for(employee):
    return Actor(id=employee.id, role=employee.role)


def auth_headers(employee):
    token = create_access_token({"sub": str(employee.id), "role": employee.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def department(db):
    """Engineering: 5 annual days, 15 consecutive working days per request"""
    dept = Department(name="Engineering", code="ENG", annual_days=5, max_consecutive_days=15)
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


@pytest.fixture
def manager(db, department):
    """Manager of the Engineering department"""
    mgr = make_employee(db, "Maya Manager", "maya@example.com", Role.MANAGER, department_id=department.id)
    department.manager_id = mgr.id
    db.commit()
    return mgr


@pytest.fixture
def employee(db, department, manager):
    """Engineer reporting to the department manager"""
    return make_employee(
        db, "Eli Engineer", "eli@example.com", Role.EMPLOYEE,
        department_id=department.id, manager_id=manager.id,
    )


@pytest.fixture
def admin(db):
    return make_employee(db, "Ada Admin", "ada@example.com", Role.ADMIN)


@pytest.fixture
def other_manager(db):
    """A manager with no reporting line to the Engineering employees"""
    return make_employee(db, "Xavier Outsider", "xavier@example.com", Role.MANAGER)
