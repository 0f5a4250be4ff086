"""
Employee schemas
"""
from datetime import date, datetime
from typing import Dict, Optional
from pydantic import BaseModel, Field, field_validator, field_serializer, ConfigDict

from leavewise.models.employee import Role
from leavewise.models.leave import LeaveType
from leavewise.utils.datetime_utils import iso_8601_utc


class EmployeeCreate(BaseModel):
    """Schema for creating an employee; ledger rows are allocated on create"""
    name: str = Field(..., min_length=2, max_length=100, description="Employee name")
    email: str = Field(..., description="Login email (unique)")
    password: Optional[str] = Field(None, description="Initial password (optional)")
    role: Role = Field(default=Role.EMPLOYEE, description="Employee role")
    department_id: Optional[int] = Field(None, description="Department ID")
    manager_id: Optional[int] = Field(None, description="Direct manager ID")
    join_date: date = Field(..., description="Employee join date")
    active: bool = Field(default=True, description="Employee active status")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Invalid email address")
        return v

    @field_validator("password", mode="before")
    @classmethod
    def validate_password(cls, v):
        """Normalize and validate password"""
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password cannot be longer than 72 bytes when encoded as UTF-8")
        return v


class EmployeeUpdate(BaseModel):
    """Schema for updating an employee"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[Role] = None
    department_id: Optional[int] = None
    manager_id: Optional[int] = None
    active: Optional[bool] = None


class EmployeeOut(BaseModel):
    """Schema for employee output"""
    id: int
    name: str
    email: str
    role: str
    department_id: Optional[int]
    manager_id: Optional[int]
    join_date: date
    active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_8601_utc(dt)


class EmployeeRef(BaseModel):
    """Minimal employee embedded in leave/claim output"""
    id: int
    name: str
    email: str
    role: str
    department_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class BalanceOut(BaseModel):
    employee_id: int
    balances: Dict[str, int]


class BalanceAdjustRequest(BaseModel):
    """Admin manual ledger correction"""
    leave_type: LeaveType
    delta: int = Field(..., description="Positive to credit, negative to debit; never below zero")
    remarks: str = Field(..., min_length=3, description="Why the balance is corrected")
