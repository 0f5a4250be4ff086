"""
Employee service - business logic for employee management
"""
import logging
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional
from leavewise.core.errors import Forbidden, NotFound, ValidationError
from leavewise.core.security import hash_password
from leavewise.models.audit_log import AuditAction
from leavewise.models.department import Department
from leavewise.models.employee import Employee, Role
from leavewise.schemas.employee import EmployeeCreate, EmployeeUpdate
from leavewise.services import balance_ledger
from leavewise.services.audit_service import log_audit
from leavewise.services.leave_service import managed_employee_ids
from leavewise.services.transitions import Actor

logger = logging.getLogger(__name__)


def _check_department(db: Session, department_id: Optional[int]) -> None:
    if department_id is None:
        return
    if not db.query(Department).filter(Department.id == department_id).first():
        raise ValidationError(f"Department with id {department_id} not found")


def _check_manager(db: Session, manager_id: Optional[int], employee_id: Optional[int] = None) -> None:
    if manager_id is None:
        return
    if employee_id is not None and manager_id == employee_id:
        raise ValidationError("An employee cannot be their own manager")
    manager = db.query(Employee).filter(Employee.id == manager_id).first()
    if not manager:
        raise ValidationError(f"Manager with id {manager_id} not found")
    if manager.role not in (Role.MANAGER.value, Role.ADMIN.value):
        raise ValidationError("Manager must have the manager or admin role")


def create_employee(db: Session, employee_data: EmployeeCreate, actor_id: Optional[int]) -> Employee:
    """
    Create an employee and allocate their leave ledger from the department policy

    Raises:
        ValidationError: duplicate email, unknown department or manager
    """
    existing = db.query(Employee).filter(func.lower(Employee.email) == employee_data.email.lower()).first()
    if existing:
        raise ValidationError(f"Employee with email '{employee_data.email}' already exists")
    _check_department(db, employee_data.department_id)
    _check_manager(db, employee_data.manager_id)

    employee = Employee(
        name=employee_data.name.strip(),
        email=employee_data.email,
        password_hash=hash_password(employee_data.password) if employee_data.password else None,
        role=Role(employee_data.role).value,
        department_id=employee_data.department_id,
        manager_id=employee_data.manager_id,
        join_date=employee_data.join_date,
        active=employee_data.active,
    )
    db.add(employee)
    db.flush()
    balance_ledger.allocate_entitlements(db, employee, actor_id=actor_id)

    log_audit(
        db=db,
        actor_id=actor_id,
        action=AuditAction.CREATE.value,
        target_model="Employee",
        target_id=employee.id,
        changes={"after": employee_data.model_dump(exclude={"password"})},
        commit=False,
    )
    db.commit()
    db.refresh(employee)
    logger.info("Employee created: employee_id=%s role=%s department_id=%s", employee.id, employee.role, employee.department_id)
    return employee


def list_employees(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    department_id: Optional[int] = None,
    manager_id: Optional[int] = None,
    active_only: Optional[bool] = None,
) -> List[Employee]:
    query = db.query(Employee)
    if department_id is not None:
        query = query.filter(Employee.department_id == department_id)
    if manager_id is not None:
        query = query.filter(Employee.manager_id == manager_id)
    if active_only is not None:
        query = query.filter(Employee.active == active_only)
    return query.order_by(Employee.name).offset(skip).limit(limit).all()


def get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound(f"Employee with id {employee_id} not found")
    return employee


def update_employee(db: Session, employee_id: int, employee_data: EmployeeUpdate, actor_id: int) -> Employee:
    employee = get_employee(db, employee_id)
    changes = employee_data.model_dump(exclude_unset=True)
    if "department_id" in changes:
        _check_department(db, changes["department_id"])
    if "manager_id" in changes:
        _check_manager(db, changes["manager_id"], employee_id=employee_id)
    if changes.get("role") is not None:
        changes["role"] = Role(changes["role"]).value

    before = {field: getattr(employee, field) for field in changes}
    for field, value in changes.items():
        setattr(employee, field, value)

    log_audit(
        db=db,
        actor_id=actor_id,
        action=AuditAction.UPDATE.value,
        target_model="Employee",
        target_id=employee.id,
        changes={"before": before, "after": changes},
        commit=False,
    )
    db.commit()
    db.refresh(employee)
    return employee


def adjust_balance(db: Session, employee_id: int, leave_type, delta: int, remarks: str, actor_id: int) -> dict:
    """Admin manual ledger correction, committed with its audit entry"""
    get_employee(db, employee_id)
    try:
        new_balance = balance_ledger.adjust(db, employee_id, leave_type, delta, actor_id, remarks)
        log_audit(
            db=db,
            actor_id=actor_id,
            action=AuditAction.UPDATE.value,
            target_model="LeaveBalance",
            target_id=employee_id,
            changes={"leave_type": leave_type, "delta": delta, "balance_after": new_balance, "remarks": remarks},
            commit=False,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return balance_ledger.get_balances(db, employee_id)


def ensure_can_view(db: Session, actor: Actor, employee_id: int) -> None:
    """Admin: anyone. Manager: self and managed employees. Employee: self."""
    if actor.is_admin or actor.id == employee_id:
        return
    if actor.is_manager and employee_id in managed_employee_ids(db, actor.id):
        return
    raise Forbidden("Not authorized to view this employee")
