"""
Holiday schemas
"""
from datetime import date as date_type
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from leavewise.models.holiday import HolidayType


class HolidayCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    date: date_type
    type: HolidayType = HolidayType.COMPANY
    is_recurring: bool = Field(False, description="Reapplies on the same month/day every year")


class HolidayUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    date: Optional[date_type] = None
    type: Optional[HolidayType] = None
    is_recurring: Optional[bool] = None


class HolidayOut(BaseModel):
    """A holiday occurrence. For recurring holidays `date` is projected onto the requested year."""
    id: int
    name: str
    date: date_type
    type: HolidayType
    is_recurring: bool
    year: int

    model_config = ConfigDict(from_attributes=True)
