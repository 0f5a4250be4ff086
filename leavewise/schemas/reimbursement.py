"""
Reimbursement claim schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, field_serializer, ConfigDict

from leavewise.models.reimbursement import ClaimCategory, ClaimStatus
from leavewise.schemas.employee import EmployeeRef
from leavewise.utils.datetime_utils import iso_8601_utc


class ClaimCreate(BaseModel):
    category: ClaimCategory = Field(..., description="Expense category")
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Claimed amount")
    currency: str = Field("INR", min_length=3, max_length=3)
    description: str = Field(..., description="What the expense was for, at least 5 characters")
    expense_date: date = Field(..., description="Date the expense was incurred")
    receipt_url: Optional[str] = Field(None, max_length=500, description="Link to an uploaded receipt")


class ClaimTransitionRequest(BaseModel):
    status: ClaimStatus = Field(..., description="Target status")
    comment: Optional[str] = Field(None, max_length=1000)


class ClaimActionRequest(BaseModel):
    comment: Optional[str] = Field(None, max_length=1000)


class ClaimOut(BaseModel):
    id: int
    employee_id: int
    employee: Optional[EmployeeRef] = None
    category: ClaimCategory
    amount: Decimal
    currency: str
    description: str
    expense_date: date
    receipt_url: Optional[str] = None
    status: ClaimStatus
    approver_comment: Optional[str] = None
    approved_by_id: Optional[int] = None
    processed_at: Optional[datetime] = None
    version: int
    submitted_at: datetime
    allowed_transitions: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("submitted_at", "processed_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)

    @field_serializer("amount", when_used="always")
    @classmethod
    def _ser_amount(cls, amount: Decimal) -> str:
        return f"{amount:.2f}"


class ClaimListResponse(BaseModel):
    items: List[ClaimOut]
    total: int
    page: int
    page_size: int


class ClaimStatsOut(BaseModel):
    pending: int
    manager_approved: int
    approved: int
    rejected: int
    cancelled: int
    total_approved_amount: Decimal

    @field_serializer("total_approved_amount", when_used="always")
    @classmethod
    def _ser_amount(cls, amount: Decimal) -> str:
        return f"{amount:.2f}"
