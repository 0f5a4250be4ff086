"""
Analytics dashboard schemas
"""
from datetime import date
from typing import List
from pydantic import BaseModel, ConfigDict


class OverviewOut(BaseModel):
    total_employees: int
    total_leaves: int
    pending_leaves: int
    approved_this_month: int
    approved_last_month: int
    rejected_this_month: int
    approval_rate: int
    on_leave_today: int
    approval_delta: int

    model_config = ConfigDict(from_attributes=True)


class TypeDistributionOut(BaseModel):
    leave_type: str
    count: int
    total_days: int

    model_config = ConfigDict(from_attributes=True)


class LeaveDistributionOut(BaseModel):
    distribution: List[TypeDistributionOut]


class MonthTrendOut(BaseModel):
    month: str
    label: str
    total: int
    approved: int
    rejected: int
    total_days: int

    model_config = ConfigDict(from_attributes=True)


class MonthlyTrendOut(BaseModel):
    trend: List[MonthTrendOut]


class DepartmentStatsOut(BaseModel):
    department_id: int
    department: str
    code: str
    employee_count: int
    total_leaves: int
    approved_leaves: int
    total_days_used: int
    avg_days_per_employee: float

    model_config = ConfigDict(from_attributes=True)


class DepartmentComparisonOut(BaseModel):
    comparison: List[DepartmentStatsOut]


class OnLeaveEntryOut(BaseModel):
    employee_id: int
    name: str
    leave_id: int
    end_date: date

    model_config = ConfigDict(from_attributes=True)


class TeamMemberStatsOut(BaseModel):
    employee_id: int
    name: str
    email: str
    remaining_days: int
    days_taken: int

    model_config = ConfigDict(from_attributes=True)


class TeamAnalyticsOut(BaseModel):
    manager_id: int
    team_size: int
    avg_processing_hours: float
    on_leave_today: List[OnLeaveEntryOut]
    members: List[TeamMemberStatsOut]

    model_config = ConfigDict(from_attributes=True)
