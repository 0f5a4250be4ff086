"""
Tests for the balance ledger
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leavewise.db.base import Base
from leavewise.core.errors import InsufficientBalance, LedgerConflict, ValidationError
from leavewise.models.leave import LeaveBalance, LeaveTransaction, LeaveType, LeaveTransactionAction
from leavewise.services import balance_ledger

from conftest import make_employee


def test_allocation_follows_department_policy(db, employee):
    balances = balance_ledger.get_balances(db, employee.id)
    assert balances == {"annual": 5, "sick": 10, "personal": 5, "maternity": 90, "paternity": 15}

    allocations = (
        db.query(LeaveTransaction)
        .filter(
            LeaveTransaction.employee_id == employee.id,
            LeaveTransaction.action == LeaveTransactionAction.ALLOCATE.value,
        )
        .count()
    )
    assert allocations == 5


def test_allocation_without_department_uses_defaults(db):
    emp = make_employee(db, "Nadia Nodept", "nadia@example.com")
    assert balance_ledger.get_balance(db, emp.id, LeaveType.ANNUAL) == 20


def test_allocate_twice_keeps_existing_rows(db, employee):
    balance_ledger.reserve_or_deduct(db, employee.id, LeaveType.ANNUAL, 2)
    db.commit()
    balance_ledger.allocate_entitlements(db, employee)
    db.commit()
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 3
    rows = db.query(LeaveBalance).filter(LeaveBalance.employee_id == employee.id).count()
    assert rows == len(LeaveType)


def test_deduct_and_restore(db, employee):
    assert balance_ledger.reserve_or_deduct(db, employee.id, LeaveType.ANNUAL, 3) == 2
    assert balance_ledger.restore(db, employee.id, LeaveType.ANNUAL, 3) == 5
    db.commit()

    history = balance_ledger.get_transactions(db, employee.id, leave_type=LeaveType.ANNUAL)
    actions = [t.action for t in history]
    assert LeaveTransactionAction.APPROVE_DEDUCT.value in actions
    assert LeaveTransactionAction.CANCEL_RESTORE.value in actions


def test_deduct_beyond_balance_leaves_ledger_unchanged(db, employee):
    with pytest.raises(InsufficientBalance):
        balance_ledger.reserve_or_deduct(db, employee.id, LeaveType.ANNUAL, 6)
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 5


def test_deduct_requires_positive_days(db, employee):
    with pytest.raises(ValidationError):
        balance_ledger.reserve_or_deduct(db, employee.id, LeaveType.ANNUAL, 0)


def test_restore_of_zero_days_is_noop(db, employee):
    assert balance_ledger.restore(db, employee.id, LeaveType.SICK, 0) == 10


def test_version_bumps_on_every_mutation(db, employee):
    row = balance_ledger._read_row(db, employee.id, LeaveType.ANNUAL)
    balance_ledger.reserve_or_deduct(db, employee.id, LeaveType.ANNUAL, 1)
    after = balance_ledger._read_row(db, employee.id, LeaveType.ANNUAL)
    assert after.version == row.version + 1
    assert after.days == 4


def test_adjust_requires_remarks_and_nonzero_delta(db, employee, admin):
    with pytest.raises(ValidationError):
        balance_ledger.adjust(db, employee.id, LeaveType.ANNUAL, 0, admin.id, "typo fix")
    with pytest.raises(ValidationError):
        balance_ledger.adjust(db, employee.id, LeaveType.ANNUAL, 2, admin.id, "  ")


def test_adjust_never_goes_negative(db, employee, admin):
    assert balance_ledger.adjust(db, employee.id, LeaveType.ANNUAL, 2, admin.id, "Carry-over") == 7
    with pytest.raises(InsufficientBalance):
        balance_ledger.adjust(db, employee.id, LeaveType.ANNUAL, -8, admin.id, "Correction")


def test_lost_races_surface_retryable_conflict(db, employee, monkeypatch):
    attempts = []

    def always_lose(db, row_id, seen_version, delta):
        attempts.append(seen_version)
        return False

    monkeypatch.setattr(balance_ledger, "_compare_and_set", always_lose)
    with pytest.raises(LedgerConflict) as exc_info:
        balance_ledger.reserve_or_deduct(db, employee.id, LeaveType.ANNUAL, 1)

    assert exc_info.value.retryable is True
    assert len(attempts) == balance_ledger.settings.LEDGER_MAX_RETRIES
    assert balance_ledger.get_balance(db, employee.id, LeaveType.ANNUAL) == 5


def test_one_lost_race_then_success(db, employee, monkeypatch):
    real = balance_ledger._compare_and_set
    calls = []

    def lose_once(db, row_id, seen_version, delta):
        calls.append(seen_version)
        if len(calls) == 1:
            return False
        return real(db, row_id, seen_version, delta)

    monkeypatch.setattr(balance_ledger, "_compare_and_set", lose_once)
    assert balance_ledger.reserve_or_deduct(db, employee.id, LeaveType.ANNUAL, 2) == 3
    assert len(calls) == 2


@pytest.fixture
def file_sessions(tmp_path):
    """Two independent sessions over one file-backed SQLite database"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = Session(), Session()
    try:
        yield first, second
    finally:
        first.close()
        second.close()
        engine.dispose()


def test_stale_writer_cannot_overwrite_committed_deduction(file_sessions):
    session_a, session_b = file_sessions
    emp = make_employee(session_a, "Rita Racer", "rita@example.com")

    seen = balance_ledger._read_row(session_a, emp.id, LeaveType.ANNUAL)
    assert (seen.days, seen.version) == (20, 1)

    # Another writer deducts and commits after A has read the row
    assert balance_ledger.reserve_or_deduct(session_b, emp.id, LeaveType.ANNUAL, 18) == 2
    session_b.commit()

    assert balance_ledger._compare_and_set(session_a, seen.id, seen.version, -3) is False
    with pytest.raises(InsufficientBalance):
        balance_ledger.reserve_or_deduct(session_a, emp.id, LeaveType.ANNUAL, 3)
    session_a.rollback()

    row = balance_ledger._read_row(session_b, emp.id, LeaveType.ANNUAL)
    assert (row.days, row.version) == (2, 2)


def test_stale_writer_retries_against_committed_balance(file_sessions):
    session_a, session_b = file_sessions
    emp = make_employee(session_a, "Rita Racer", "rita@example.com")

    seen = balance_ledger._read_row(session_a, emp.id, LeaveType.ANNUAL)
    balance_ledger.reserve_or_deduct(session_b, emp.id, LeaveType.ANNUAL, 5)
    session_b.commit()

    assert balance_ledger._compare_and_set(session_a, seen.id, seen.version, -4) is False
    assert balance_ledger.reserve_or_deduct(session_a, emp.id, LeaveType.ANNUAL, 4) == 11
    session_a.commit()

    row = balance_ledger._read_row(session_b, emp.id, LeaveType.ANNUAL)
    assert (row.days, row.version) == (11, 3)
