"""
Department management endpoints (admin-only)
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leavewise.core.deps import get_db, require_roles
from leavewise.models.employee import Role, Employee
from leavewise.schemas.department import DepartmentCreate, DepartmentUpdate, DepartmentOut
from leavewise.services.department_service import (
    create_department,
    list_departments,
    get_department,
    update_department
)

router = APIRouter()


@router.post("", response_model=DepartmentOut, status_code=201)
async def create_department_endpoint(
    department_data: DepartmentCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Create a new department with its leave policy"""
    return create_department(db, department_data, current_user.id)


@router.get("", response_model=List[DepartmentOut])
async def list_departments_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    active_only: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN, Role.MANAGER))
):
    """List departments (Admin/Manager)"""
    return list_departments(db, skip=skip, limit=limit, active_only=active_only)


@router.get("/{department_id}", response_model=DepartmentOut)
async def get_department_endpoint(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN, Role.MANAGER))
):
    """Get a department by ID"""
    return get_department(db, department_id)


@router.patch("/{department_id}", response_model=DepartmentOut)
async def update_department_endpoint(
    department_id: int,
    department_data: DepartmentUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Update a department, including its leave policy (Admin-only)"""
    return update_department(db, department_id, department_data, current_user.id)
