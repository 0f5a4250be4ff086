"""
Department schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_serializer, field_validator, ConfigDict

from leavewise.utils.datetime_utils import iso_8601_utc


class DepartmentCreate(BaseModel):
    """Schema for creating a department with its leave policy"""
    name: str = Field(..., min_length=2, max_length=100, description="Department name")
    code: str = Field(..., min_length=2, max_length=10, description="Short code, stored upper-case")
    manager_id: Optional[int] = Field(None, description="Department manager employee ID")
    annual_days: int = Field(20, ge=0, description="Annual leave entitlement")
    sick_days: int = Field(10, ge=0, description="Sick leave entitlement")
    personal_days: int = Field(5, ge=0, description="Personal leave entitlement")
    maternity_days: int = Field(90, ge=0, description="Maternity leave entitlement")
    paternity_days: int = Field(15, ge=0, description="Paternity leave entitlement")
    max_consecutive_days: Optional[int] = Field(
        15, ge=1, description="Working-day cap per request; null means unlimited (maternity/paternity exempt)"
    )
    active: bool = Field(default=True, description="Department active status")

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()


class DepartmentUpdate(BaseModel):
    """Schema for updating a department; only sent fields change"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    code: Optional[str] = Field(None, min_length=2, max_length=10)
    manager_id: Optional[int] = None
    annual_days: Optional[int] = Field(None, ge=0)
    sick_days: Optional[int] = Field(None, ge=0)
    personal_days: Optional[int] = Field(None, ge=0)
    maternity_days: Optional[int] = Field(None, ge=0)
    paternity_days: Optional[int] = Field(None, ge=0)
    max_consecutive_days: Optional[int] = Field(None, ge=1)
    active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class DepartmentOut(BaseModel):
    """Schema for department output"""
    id: int
    name: str
    code: str
    manager_id: Optional[int]
    annual_days: int
    sick_days: int
    personal_days: int
    maternity_days: int
    paternity_days: int
    max_consecutive_days: Optional[int]
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_8601_utc(dt)
