"""
Department service - business logic for department management
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional
from leavewise.core.errors import NotFound, ValidationError
from leavewise.models.audit_log import AuditAction
from leavewise.models.department import Department
from leavewise.models.employee import Employee
from leavewise.schemas.department import DepartmentCreate, DepartmentUpdate
from leavewise.services.audit_service import log_audit


def _check_unique(db: Session, name: Optional[str], code: Optional[str], exclude_id: Optional[int] = None) -> None:
    if name is not None:
        query = db.query(Department).filter(func.lower(Department.name) == func.lower(name))
        if exclude_id:
            query = query.filter(Department.id != exclude_id)
        if query.first():
            raise ValidationError(f"Department with name '{name}' already exists")
    if code is not None:
        query = db.query(Department).filter(Department.code == code.upper())
        if exclude_id:
            query = query.filter(Department.id != exclude_id)
        if query.first():
            raise ValidationError(f"Department with code '{code}' already exists")


def _check_manager(db: Session, manager_id: Optional[int]) -> None:
    if manager_id is None:
        return
    manager = db.query(Employee).filter(Employee.id == manager_id).first()
    if not manager:
        raise ValidationError(f"Manager with id {manager_id} not found")
    if not manager.active:
        raise ValidationError("Department manager must be an active employee")


def create_department(
    db: Session,
    department_data: DepartmentCreate,
    actor_id: int
) -> Department:
    """
    Create a new department with its leave policy

    Raises:
        ValidationError: If name or code already exists, or manager is unknown
    """
    _check_unique(db, department_data.name, department_data.code)
    _check_manager(db, department_data.manager_id)

    department = Department(**department_data.model_dump())
    db.add(department)
    db.flush()

    log_audit(
        db=db,
        actor_id=actor_id,
        action=AuditAction.CREATE.value,
        target_model="Department",
        target_id=department.id,
        changes={"after": department_data.model_dump()},
        commit=False,
    )
    db.commit()
    db.refresh(department)
    return department


def list_departments(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    active_only: Optional[bool] = None
) -> List[Department]:
    query = db.query(Department)
    if active_only is not None:
        query = query.filter(Department.active == active_only)
    return query.order_by(Department.name).offset(skip).limit(limit).all()


def get_department(db: Session, department_id: int) -> Department:
    department = db.query(Department).filter(Department.id == department_id).first()
    if not department:
        raise NotFound(f"Department with id {department_id} not found")
    return department


def update_department(
    db: Session,
    department_id: int,
    department_data: DepartmentUpdate,
    actor_id: int
) -> Department:
    """
    Update a department, including its leave policy. Policy changes apply to
    future allocations and submissions; existing ledger rows are not rewritten.
    """
    department = get_department(db, department_id)
    changes = department_data.model_dump(exclude_unset=True)

    _check_unique(db, changes.get("name"), changes.get("code"), exclude_id=department_id)
    if "manager_id" in changes:
        _check_manager(db, changes["manager_id"])

    before = {field: getattr(department, field) for field in changes}
    for field, value in changes.items():
        setattr(department, field, value)

    log_audit(
        db=db,
        actor_id=actor_id,
        action=AuditAction.UPDATE.value,
        target_model="Department",
        target_id=department.id,
        changes={"before": before, "after": changes},
        commit=False,
    )
    db.commit()
    db.refresh(department)
    return department
