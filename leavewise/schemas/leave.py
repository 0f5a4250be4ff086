"""
Leave schemas
"""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_serializer, model_validator
from pydantic import ConfigDict

from leavewise.models.leave import LeaveType, LeaveStatus
from leavewise.schemas.employee import EmployeeRef
from leavewise.utils.datetime_utils import iso_8601_utc


class LeaveApplyRequest(BaseModel):
    """Schema for applying leave"""
    leave_type: LeaveType = Field(..., description="Type of leave")
    start_date: date = Field(..., description="First day of leave (inclusive)")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    reason: str = Field(..., description="Reason for leave, at least 10 characters")
    is_urgent: bool = Field(False, description="Flag the request as urgent for the approver")

    @model_validator(mode="after")
    def check_dates(self) -> "LeaveApplyRequest":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be less than or equal to end_date")
        return self


class LeaveTransitionRequest(BaseModel):
    """Generic transition: target status plus optional comment"""
    status: LeaveStatus = Field(..., description="Target status")
    comment: Optional[str] = Field(None, max_length=1000, description="Manager comment")


class LeaveActionRequest(BaseModel):
    """Body for approve/reject/cancel shortcuts"""
    comment: Optional[str] = Field(None, max_length=1000, description="Optional comment")


class LeaveOut(BaseModel):
    """Schema for leave output"""
    id: int
    employee_id: int
    employee: Optional[EmployeeRef] = None
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: int
    deducted_days: int
    reason: str
    is_urgent: bool
    status: LeaveStatus
    manager_comment: Optional[str] = None
    processed_by_id: Optional[int] = None
    processed_by: Optional[EmployeeRef] = None
    processed_at: Optional[datetime] = None
    version: int
    applied_at: datetime
    updated_at: datetime
    allowed_transitions: List[str] = Field(default_factory=list, description="Statuses the caller may move this request to")

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("applied_at", "updated_at", "processed_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class LeaveListResponse(BaseModel):
    items: List[LeaveOut]
    total: int
    page: int
    page_size: int


class LeaveTransactionOut(BaseModel):
    """Ledger history row"""
    id: int
    employee_id: int
    leave_id: Optional[int]
    leave_type: LeaveType
    delta_days: int
    action: str
    remarks: Optional[str]
    action_by_id: Optional[int]
    action_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("action_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class ExpireRequest(BaseModel):
    as_of: Optional[date] = Field(None, description="Expire pending requests starting before this date (default today)")


class ExpireResponse(BaseModel):
    as_of: date
    expired_ids: List[int]
