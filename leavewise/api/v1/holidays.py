"""
Holiday calendar endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leavewise.core.deps import get_db, require_roles, get_current_user
from leavewise.models.employee import Role, Employee
from leavewise.models.holiday import HolidayType
from leavewise.schemas.holiday import HolidayCreate, HolidayUpdate, HolidayOut
from leavewise.services.holiday_service import (
    create_holiday,
    list_holidays,
    get_holiday,
    update_holiday,
    delete_holiday,
)
from leavewise.utils.datetime_utils import today_utc

router = APIRouter()


@router.post("", response_model=HolidayOut, status_code=201)
async def create_holiday_endpoint(
    holiday_data: HolidayCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Create a new holiday (Admin-only)"""
    return create_holiday(
        db=db,
        name=holiday_data.name,
        holiday_date=holiday_data.date,
        holiday_type=holiday_data.type,
        is_recurring=holiday_data.is_recurring,
        actor_id=current_user.id
    )


@router.get("", response_model=List[HolidayOut])
async def list_holidays_endpoint(
    year: Optional[int] = Query(None, description="Calendar year (default: current year)"),
    type: Optional[HolidayType] = Query(None, description="national or company"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """List holidays for a year; recurring holidays are projected onto it"""
    return list_holidays(db, year=year or today_utc().year, holiday_type=type)


@router.get("/{holiday_id}", response_model=HolidayOut)
async def get_holiday_endpoint(
    holiday_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    return get_holiday(db, holiday_id)


@router.patch("/{holiday_id}", response_model=HolidayOut)
async def update_holiday_endpoint(
    holiday_id: int,
    holiday_data: HolidayUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Update a holiday (Admin-only)"""
    return update_holiday(db, holiday_id, holiday_data.model_dump(exclude_unset=True), actor_id=current_user.id)


@router.delete("/{holiday_id}", status_code=204)
async def delete_holiday_endpoint(
    holiday_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Delete a holiday (Admin-only)"""
    delete_holiday(db, holiday_id, actor_id=current_user.id)
