"""
Advisory engine schemas: burnout, leave advice, suggestions, text parsing, forecasts
"""
from datetime import date
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator

from leavewise.models.leave import LeaveType
from leavewise.schemas.holiday import HolidayOut


class BurnoutOut(BaseModel):
    employee_id: Optional[int] = None
    score: int = Field(..., ge=0, le=100)
    category: str
    factors: List[str]
    recommendations: List[str]
    raw_scores: Dict[str, float]
    weights: Dict[str, float]
    days_since_last_leave: int
    label: str

    model_config = ConfigDict(from_attributes=True)


class TeamMemberBurnoutOut(BaseModel):
    employee_id: int
    name: str
    score: int
    category: str

    model_config = ConfigDict(from_attributes=True)


class TeamBurnoutOut(BaseModel):
    manager_id: int
    average_score: int
    team_size: int
    high_risk_count: int
    members: List[TeamMemberBurnoutOut]

    model_config = ConfigDict(from_attributes=True)


class AdviceRequest(BaseModel):
    leave_type: LeaveType = LeaveType.ANNUAL
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    employee_id: Optional[int] = Field(None, description="Defaults to the caller")

    @model_validator(mode="after")
    def check_dates(self) -> "AdviceRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be less than or equal to end_date")
        return self


class AlternativeWindowOut(BaseModel):
    start_date: date
    end_date: date
    team_conflicts: int
    note: str

    model_config = ConfigDict(from_attributes=True)


class AdviceOut(BaseModel):
    score: int
    recommendation: str
    factors: List[str]
    alternatives: List[AlternativeWindowOut]
    label: str

    model_config = ConfigDict(from_attributes=True)


class SuggestedWindowOut(BaseModel):
    start_date: date
    end_date: date
    reason: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class SuggestionOut(BaseModel):
    should_suggest: bool
    days_since_last_leave: int
    burnout_score: int
    remaining_balance: int
    message: Optional[str] = None
    windows: List[SuggestedWindowOut]
    upcoming_holidays: List[HolidayOut]

    model_config = ConfigDict(from_attributes=True)


class ParseLeaveRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


class ParseLeaveOut(BaseModel):
    original: str
    leave_type: LeaveType
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_days: Optional[int] = None
    confidence: float
    confidence_label: str
    parsed: bool
    needs_confirmation: bool

    model_config = ConfigDict(from_attributes=True)


class RejectionReasonRequest(BaseModel):
    reason_code: Optional[str] = Field(None, description="team_coverage, project_deadline, short_notice, balance_insufficient, peak_period")
    leave_id: Optional[int] = None


class RejectionReasonOut(BaseModel):
    suggestion: str
    reason_code: str
    is_editable: bool
    label: str

    model_config = ConfigDict(from_attributes=True)


class MonthDemandOut(BaseModel):
    month: str
    count: int
    total_days: int
    type: str

    model_config = ConfigDict(from_attributes=True)


class ForecastOut(BaseModel):
    historical: List[MonthDemandOut]
    forecast: List[MonthDemandOut]
    methodology: str
    disclaimer: str

    model_config = ConfigDict(from_attributes=True)
