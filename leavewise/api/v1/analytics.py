"""
Leave analytics endpoints for the admin and manager dashboards
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leavewise.core.deps import get_db, get_actor, require_roles
from leavewise.core.errors import ValidationError
from leavewise.models.employee import Role, Employee
from leavewise.schemas.analytics import (
    OverviewOut,
    LeaveDistributionOut,
    TypeDistributionOut,
    MonthlyTrendOut,
    MonthTrendOut,
    DepartmentComparisonOut,
    DepartmentStatsOut,
    TeamAnalyticsOut,
)
from leavewise.services.analytics_service import (
    get_overview,
    get_leave_distribution,
    get_monthly_trend,
    get_department_comparison,
    get_team_analytics,
)
from leavewise.services.transitions import Actor
from leavewise.utils.datetime_utils import today_utc

router = APIRouter()


@router.get("/overview", response_model=OverviewOut)
async def overview_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    """Organisation-wide counters, this month against last month"""
    return OverviewOut.model_validate(get_overview(db, today_utc()))


@router.get("/leave-distribution", response_model=LeaveDistributionOut)
async def leave_distribution_endpoint(
    department_id: Optional[int] = Query(None, description="Admin only; managers always see their team"),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    actor: Actor = Depends(get_actor)
):
    if from_date and to_date and from_date > to_date:
        raise ValidationError("from_date must be less than or equal to to_date")
    distribution = get_leave_distribution(db, actor, department_id, from_date, to_date)
    return LeaveDistributionOut(distribution=[TypeDistributionOut.model_validate(d) for d in distribution])


@router.get("/monthly-trend", response_model=MonthlyTrendOut)
async def monthly_trend_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    actor: Actor = Depends(get_actor)
):
    """Requests per month for the last 12 months"""
    trend = get_monthly_trend(db, actor, today_utc())
    return MonthlyTrendOut(trend=[MonthTrendOut.model_validate(t) for t in trend])


@router.get("/department-comparison", response_model=DepartmentComparisonOut)
async def department_comparison_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN))
):
    comparison = get_department_comparison(db)
    return DepartmentComparisonOut(comparison=[DepartmentStatsOut.model_validate(c) for c in comparison])


@router.get("/team", response_model=TeamAnalyticsOut)
async def team_analytics_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.MANAGER)),
    actor: Actor = Depends(get_actor)
):
    """Team size, who is out today and average decision time for the caller's team"""
    return TeamAnalyticsOut.model_validate(get_team_analytics(db, actor, today_utc()))
