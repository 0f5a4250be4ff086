"""
Balance Ledger - authoritative remaining days per (employee, leave type).

- Rows are created by allocate_entitlements from the department leave policy.
- Every mutation is a compare-and-set on leave_balances.version:
      UPDATE ... SET days = days + :delta, version = version + 1
      WHERE id = :id AND version = :seen [AND days >= :needed]
  A lost race re-reads the row and retries (LEDGER_MAX_RETRIES attempts).
- Never commits: the caller's transaction (leave approval / cancellation)
  commits the ledger change together with the status change.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from leavewise.core.config import settings
from leavewise.core.errors import InsufficientBalance, LedgerConflict, ValidationError
from leavewise.models.department import Department, DEFAULT_LEAVE_POLICY
from leavewise.models.employee import Employee
from leavewise.models.leave import (
    LeaveBalance,
    LeaveTransaction,
    LeaveType,
    LeaveTransactionAction,
)
from leavewise.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def _read_row(db: Session, employee_id: int, leave_type: LeaveType):
    """Fresh (id, days, version) straight from the database, bypassing the identity map"""
    return db.execute(
        select(LeaveBalance.id, LeaveBalance.days, LeaveBalance.version).where(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type == leave_type,
        )
    ).first()


def _compare_and_set(db: Session, row_id: int, seen_version: int, delta: int) -> bool:
    """One CAS attempt. False when another writer bumped the version first."""
    stmt = (
        update(LeaveBalance)
        .where(LeaveBalance.id == row_id, LeaveBalance.version == seen_version)
        .values(days=LeaveBalance.days + delta, version=LeaveBalance.version + 1)
        .execution_options(synchronize_session="fetch")
    )
    if delta < 0:
        stmt = stmt.where(LeaveBalance.days >= -delta)
    result = db.execute(stmt)
    return result.rowcount == 1


def _log_transaction(
    db: Session,
    employee_id: int,
    leave_id: Optional[int],
    leave_type: LeaveType,
    delta_days: int,
    action: str,
    remarks: Optional[str],
    action_by_id: Optional[int],
) -> None:
    t = LeaveTransaction(
        employee_id=employee_id,
        leave_id=leave_id,
        leave_type=leave_type,
        delta_days=delta_days,
        action=action,
        remarks=remarks,
        action_by_id=action_by_id,
        action_at=now_utc(),
    )
    db.add(t)


def _apply_delta(db: Session, employee_id: int, leave_type: LeaveType, delta: int) -> int:
    """
    CAS loop shared by deduct/restore/adjust. Returns the new balance.

    Raises InsufficientBalance when a deduction exceeds the current balance,
    LedgerConflict when every attempt lost its race.
    """
    leave_type = LeaveType(leave_type)
    max_attempts = settings.LEDGER_MAX_RETRIES
    for attempt in range(1, max_attempts + 1):
        row = _read_row(db, employee_id, leave_type)
        current = row.days if row else 0
        if delta < 0 and current < -delta:
            raise InsufficientBalance(
                f"Insufficient {leave_type.value} balance: requested {-delta} day(s), available {current}"
            )
        if row is None:
            # Only credits reach here: the first credit creates the row
            db.add(LeaveBalance(employee_id=employee_id, leave_type=leave_type, days=delta, version=1))
            db.flush()
            return delta
        if _compare_and_set(db, row.id, row.version, delta):
            return current + delta
        logger.warning(
            "Ledger CAS lost: employee_id=%s leave_type=%s seen_version=%s attempt=%s/%s",
            employee_id, leave_type.value, row.version, attempt, max_attempts,
        )
    raise LedgerConflict(
        f"Balance for {leave_type.value} changed concurrently; retry the operation"
    )


def get_balance(db: Session, employee_id: int, leave_type: LeaveType) -> int:
    """Remaining days; 0 when the employee has no row for the type"""
    row = _read_row(db, employee_id, LeaveType(leave_type))
    return row.days if row else 0


def get_balances(db: Session, employee_id: int) -> Dict[str, int]:
    """Remaining days for every leave type, e.g. {"annual": 20, "sick": 10, ...}"""
    balances = {lt.value: 0 for lt in LeaveType}
    rows = db.execute(
        select(LeaveBalance.leave_type, LeaveBalance.days).where(LeaveBalance.employee_id == employee_id)
    ).all()
    for leave_type, days in rows:
        balances[LeaveType(leave_type).value] = days
    return balances


def allocate_entitlements(
    db: Session,
    employee: Employee,
    actor_id: Optional[int] = None,
) -> List[LeaveBalance]:
    """
    Create one ledger row per leave type from the employee's department policy
    (DEFAULT_LEAVE_POLICY when there is no department). Existing rows are left
    untouched so this is safe to call twice.
    """
    policy = dict(DEFAULT_LEAVE_POLICY)
    if employee.department_id:
        department = db.query(Department).filter(Department.id == employee.department_id).first()
        if department:
            policy = department.leave_policy()

    rows = []
    for leave_type in LeaveType:
        bal = (
            db.query(LeaveBalance)
            .filter(LeaveBalance.employee_id == employee.id, LeaveBalance.leave_type == leave_type)
            .first()
        )
        if not bal:
            days = int(policy.get(leave_type.value, 0))
            bal = LeaveBalance(employee_id=employee.id, leave_type=leave_type, days=days, version=1)
            db.add(bal)
            _log_transaction(
                db, employee.id, None, leave_type, days,
                LeaveTransactionAction.ALLOCATE.value, "Initial entitlement", actor_id,
            )
        rows.append(bal)
    db.flush()
    logger.info("Ledger allocated: employee_id=%s policy=%s", employee.id, policy)
    return rows


def reserve_or_deduct(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    days: int,
    leave_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> int:
    """
    Deduct `days` from the ledger on approval. Returns the new balance.

    Raises InsufficientBalance when days > current balance; the ledger is
    left unchanged in that case.
    """
    if days <= 0:
        raise ValidationError("Days to deduct must be positive")
    leave_type = LeaveType(leave_type)
    new_balance = _apply_delta(db, employee_id, leave_type, -days)
    _log_transaction(
        db, employee_id, leave_id, leave_type, -days,
        LeaveTransactionAction.APPROVE_DEDUCT.value, remarks, actor_id,
    )
    logger.info(
        "Ledger deduct: employee_id=%s leave_type=%s days=%s balance_after=%s leave_id=%s",
        employee_id, leave_type.value, days, new_balance, leave_id,
    )
    return new_balance


def restore(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    days: int,
    leave_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> int:
    """Credit back days taken at approval. No-op (returns current balance) when days <= 0."""
    leave_type = LeaveType(leave_type)
    if days <= 0:
        return get_balance(db, employee_id, leave_type)
    new_balance = _apply_delta(db, employee_id, leave_type, days)
    _log_transaction(
        db, employee_id, leave_id, leave_type, days,
        LeaveTransactionAction.CANCEL_RESTORE.value, remarks, actor_id,
    )
    logger.info(
        "Ledger restore: employee_id=%s leave_type=%s days=%s balance_after=%s leave_id=%s",
        employee_id, leave_type.value, days, new_balance, leave_id,
    )
    return new_balance


def adjust(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    delta: int,
    actor_id: int,
    remarks: str,
) -> int:
    """Admin manual correction. Refuses to take the balance below zero."""
    if delta == 0:
        raise ValidationError("Adjustment must be non-zero")
    if not remarks or not remarks.strip():
        raise ValidationError("Remarks are required for a manual adjustment")
    leave_type = LeaveType(leave_type)
    new_balance = _apply_delta(db, employee_id, leave_type, delta)
    _log_transaction(
        db, employee_id, None, leave_type, delta,
        LeaveTransactionAction.MANUAL_ADJUST.value, remarks.strip(), actor_id,
    )
    logger.info(
        "Ledger adjust: employee_id=%s leave_type=%s delta=%s balance_after=%s actor_id=%s",
        employee_id, leave_type.value, delta, new_balance, actor_id,
    )
    return new_balance


def get_transactions(
    db: Session,
    employee_id: int,
    leave_type: Optional[LeaveType] = None,
    limit: int = 100,
) -> List[LeaveTransaction]:
    q = db.query(LeaveTransaction).filter(LeaveTransaction.employee_id == employee_id)
    if leave_type is not None:
        q = q.filter(LeaveTransaction.leave_type == LeaveType(leave_type))
    return q.order_by(LeaveTransaction.action_at.desc(), LeaveTransaction.id.desc()).limit(limit).all()
