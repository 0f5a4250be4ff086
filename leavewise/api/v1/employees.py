"""
Employee management endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leavewise.core.deps import get_db, require_roles, get_current_user, get_actor
from leavewise.models.employee import Role, Employee
from leavewise.models.leave import LeaveType
from leavewise.schemas.employee import (
    EmployeeCreate,
    EmployeeUpdate,
    EmployeeOut,
    BalanceOut,
    BalanceAdjustRequest,
)
from leavewise.schemas.leave import LeaveTransactionOut
from leavewise.services import balance_ledger
from leavewise.services.employee_service import (
    create_employee,
    list_employees,
    get_employee,
    update_employee,
    adjust_balance,
    ensure_can_view,
)
from leavewise.services.transitions import Actor

router = APIRouter()


@router.post("", response_model=EmployeeOut, status_code=201)
async def create_employee_endpoint(
    employee_data: EmployeeCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Create a new employee and allocate their leave balances (Admin-only)"""
    return create_employee(db, employee_data, current_user.id)


@router.get("/me", response_model=EmployeeOut)
async def get_me_endpoint(current_user: Employee = Depends(get_current_user)):
    """Current authenticated user's profile"""
    return current_user


@router.get("", response_model=List[EmployeeOut])
async def list_employees_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    department_id: Optional[int] = Query(None),
    manager_id: Optional[int] = Query(None),
    active_only: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """List employees (Admin-only)"""
    return list_employees(
        db, skip=skip, limit=limit, department_id=department_id, manager_id=manager_id, active_only=active_only
    )


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    ensure_can_view(db, actor, employee_id)
    return get_employee(db, employee_id)


@router.patch("/{employee_id}", response_model=EmployeeOut)
async def update_employee_endpoint(
    employee_id: int,
    employee_data: EmployeeUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Update role, department, manager or active flag (Admin-only)"""
    return update_employee(db, employee_id, employee_data, current_user.id)


@router.get("/{employee_id}/balances", response_model=BalanceOut)
async def get_balances_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    ensure_can_view(db, actor, employee_id)
    get_employee(db, employee_id)
    return BalanceOut(employee_id=employee_id, balances=balance_ledger.get_balances(db, employee_id))


@router.post("/{employee_id}/balances/adjust", response_model=BalanceOut)
async def adjust_balance_endpoint(
    employee_id: int,
    adjust_data: BalanceAdjustRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Manual ledger correction (Admin-only); recorded as a MANUAL_ADJUST transaction"""
    balances = adjust_balance(
        db, employee_id, adjust_data.leave_type, adjust_data.delta, adjust_data.remarks, current_user.id
    )
    return BalanceOut(employee_id=employee_id, balances=balances)


@router.get("/{employee_id}/transactions", response_model=List[LeaveTransactionOut])
async def list_transactions_endpoint(
    employee_id: int,
    leave_type: Optional[LeaveType] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor)
):
    ensure_can_view(db, actor, employee_id)
    return balance_ledger.get_transactions(db, employee_id, leave_type=leave_type, limit=limit)
