"""
Leave analytics - read-only aggregates for the admin and manager dashboards.

Admin sees the whole organisation; a manager sees the employees they manage
(direct reports plus members of departments they head).
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from leavewise.core.errors import Forbidden
from leavewise.models.department import Department
from leavewise.models.employee import Employee
from leavewise.models.leave import LeaveRequest, LeaveStatus
from leavewise.services import balance_ledger
from leavewise.services.leave_service import managed_employee_ids
from leavewise.services.transitions import Actor
from leavewise.utils.datetime_utils import ensure_utc

logger = logging.getLogger(__name__)

TREND_MONTHS = 12


@dataclass
class Overview:
    total_employees: int
    total_leaves: int
    pending_leaves: int
    approved_this_month: int
    approved_last_month: int
    rejected_this_month: int
    approval_rate: int
    on_leave_today: int
    approval_delta: int


@dataclass
class TypeDistribution:
    leave_type: str
    count: int
    total_days: int


@dataclass
class MonthTrend:
    month: str
    label: str
    total: int = 0
    approved: int = 0
    rejected: int = 0
    total_days: int = 0


@dataclass
class DepartmentStats:
    department_id: int
    department: str
    code: str
    employee_count: int
    total_leaves: int
    approved_leaves: int
    total_days_used: int
    avg_days_per_employee: float


@dataclass
class OnLeaveEntry:
    employee_id: int
    name: str
    leave_id: int
    end_date: date


@dataclass
class TeamMemberStats:
    employee_id: int
    name: str
    email: str
    remaining_days: int
    days_taken: int


@dataclass
class TeamAnalytics:
    manager_id: int
    team_size: int
    avg_processing_hours: float
    on_leave_today: List[OnLeaveEntry] = field(default_factory=list)
    members: List[TeamMemberStats] = field(default_factory=list)


def _month_start(d: date) -> date:
    return d.replace(day=1)


def _processed_on(leave_request: LeaveRequest) -> Optional[date]:
    processed_at = ensure_utc(leave_request.processed_at)
    return processed_at.date() if processed_at else None


def _scope_query(db: Session, actor: Actor):
    """Leave requests visible to the actor's dashboard"""
    query = db.query(LeaveRequest)
    if actor.is_admin:
        return query
    if actor.is_manager:
        return query.filter(LeaveRequest.employee_id.in_(managed_employee_ids(db, actor.id)))
    raise Forbidden("Analytics are available to managers and admins only")


def get_overview(db: Session, today: date) -> Overview:
    """Organisation-wide counters, this month against last month (admin)"""
    month_start = _month_start(today)
    last_month_start = month_start - relativedelta(months=1)
    next_month_start = month_start + relativedelta(months=1)

    total_employees = db.query(func.count(Employee.id)).filter(Employee.active.is_(True)).scalar()
    total_leaves = db.query(func.count(LeaveRequest.id)).scalar()
    pending = (
        db.query(func.count(LeaveRequest.id))
        .filter(LeaveRequest.status == LeaveStatus.PENDING)
        .scalar()
    )
    on_leave_today = (
        db.query(func.count(LeaveRequest.id))
        .filter(
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.start_date <= today,
            LeaveRequest.end_date >= today,
        )
        .scalar()
    )

    approved_this = approved_last = rejected_this = 0
    decided = (
        db.query(LeaveRequest)
        .filter(
            LeaveRequest.status.in_([LeaveStatus.APPROVED, LeaveStatus.REJECTED]),
            LeaveRequest.processed_at.isnot(None),
        )
        .all()
    )
    for leave_request in decided:
        processed_on = _processed_on(leave_request)
        approved = LeaveStatus(leave_request.status) == LeaveStatus.APPROVED
        if month_start <= processed_on < next_month_start:
            if approved:
                approved_this += 1
            else:
                rejected_this += 1
        elif last_month_start <= processed_on < month_start and approved:
            approved_last += 1

    decided_this_month = approved_this + rejected_this
    approval_rate = round(approved_this * 100 / decided_this_month) if decided_this_month else 0

    return Overview(
        total_employees=total_employees,
        total_leaves=total_leaves,
        pending_leaves=pending,
        approved_this_month=approved_this,
        approved_last_month=approved_last,
        rejected_this_month=rejected_this,
        approval_rate=approval_rate,
        on_leave_today=on_leave_today,
        approval_delta=approved_this - approved_last,
    )


def get_leave_distribution(
    db: Session,
    actor: Actor,
    department_id: Optional[int] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> List[TypeDistribution]:
    """
    Approved leave per type, largest total first. `department_id` narrows an
    admin's view; a manager is always limited to the employees they manage.
    """
    query = _scope_query(db, actor).filter(LeaveRequest.status == LeaveStatus.APPROVED)
    if department_id is not None and actor.is_admin:
        query = query.join(Employee, LeaveRequest.employee_id == Employee.id).filter(
            Employee.department_id == department_id
        )
    if from_date:
        query = query.filter(LeaveRequest.start_date >= from_date)
    if to_date:
        query = query.filter(LeaveRequest.end_date <= to_date)

    rows = (
        query.with_entities(
            LeaveRequest.leave_type,
            func.count(LeaveRequest.id),
            func.coalesce(func.sum(LeaveRequest.total_days), 0),
        )
        .group_by(LeaveRequest.leave_type)
        .all()
    )
    distribution = [
        TypeDistribution(leave_type=getattr(leave_type, "value", leave_type), count=count, total_days=int(days))
        for leave_type, count, days in rows
    ]
    return sorted(distribution, key=lambda d: (-d.total_days, d.leave_type))


def get_monthly_trend(db: Session, actor: Actor, today: date) -> List[MonthTrend]:
    """Requests applied per month over the last 12 months (current month included), oldest first"""
    first_month = _month_start(today) - relativedelta(months=TREND_MONTHS - 1)
    months = OrderedDict()
    for i in range(TREND_MONTHS):
        start = first_month + relativedelta(months=i)
        months[(start.year, start.month)] = MonthTrend(
            month=f"{start.year}-{start.month:02d}",
            label=start.strftime("%b %Y"),
        )

    for leave_request in _scope_query(db, actor).all():
        applied_on = ensure_utc(leave_request.applied_at).date()
        bucket = months.get((applied_on.year, applied_on.month))
        if bucket is None:
            continue
        bucket.total += 1
        bucket.total_days += leave_request.total_days
        status = LeaveStatus(leave_request.status)
        if status == LeaveStatus.APPROVED:
            bucket.approved += 1
        elif status == LeaveStatus.REJECTED:
            bucket.rejected += 1
    return list(months.values())


def get_department_comparison(db: Session) -> List[DepartmentStats]:
    """Per-department headcount and approved leave usage (admin)"""
    comparison = []
    for department in db.query(Department).order_by(Department.name).all():
        member_ids = [
            row[0] for row in db.query(Employee.id).filter(Employee.department_id == department.id).all()
        ]
        total_leaves = approved_leaves = days_used = 0
        if member_ids:
            in_department = LeaveRequest.employee_id.in_(member_ids)
            total_leaves = db.query(func.count(LeaveRequest.id)).filter(in_department).scalar()
            approved_leaves, days_used = (
                db.query(func.count(LeaveRequest.id), func.coalesce(func.sum(LeaveRequest.total_days), 0))
                .filter(in_department, LeaveRequest.status == LeaveStatus.APPROVED)
                .one()
            )
        comparison.append(DepartmentStats(
            department_id=department.id,
            department=department.name,
            code=department.code,
            employee_count=len(member_ids),
            total_leaves=total_leaves,
            approved_leaves=approved_leaves,
            total_days_used=int(days_used),
            avg_days_per_employee=round(int(days_used) / len(member_ids), 1) if member_ids else 0.0,
        ))
    return comparison


def get_team_analytics(db: Session, actor: Actor, today: date) -> TeamAnalytics:
    """Who is out today, how fast requests get decided, and per-member usage for a manager's team"""
    if not actor.is_manager:
        raise Forbidden("Team analytics are available to managers only")

    member_ids = managed_employee_ids(db, actor.id)
    members = (
        db.query(Employee)
        .filter(Employee.id.in_(member_ids), Employee.active.is_(True))
        .order_by(Employee.name)
        .all()
    )
    active_ids = [m.id for m in members]
    team_leaves = (
        db.query(LeaveRequest)
        .options(joinedload(LeaveRequest.employee))
        .filter(LeaveRequest.employee_id.in_(active_ids))
        .all()
    )

    on_leave = []
    processing_hours = []
    days_taken = {member_id: 0 for member_id in active_ids}
    for leave_request in team_leaves:
        status = LeaveStatus(leave_request.status)
        if status == LeaveStatus.APPROVED:
            if leave_request.start_date.year == today.year:
                days_taken[leave_request.employee_id] += leave_request.deducted_days
            if leave_request.start_date <= today <= leave_request.end_date:
                on_leave.append(OnLeaveEntry(
                    employee_id=leave_request.employee_id,
                    name=leave_request.employee.name,
                    leave_id=leave_request.id,
                    end_date=leave_request.end_date,
                ))
        if status in (LeaveStatus.APPROVED, LeaveStatus.REJECTED) and leave_request.processed_at:
            elapsed = ensure_utc(leave_request.processed_at) - ensure_utc(leave_request.applied_at)
            processing_hours.append(elapsed.total_seconds() / 3600)

    avg_hours = round(sum(processing_hours) / len(processing_hours), 1) if processing_hours else 0.0
    logger.debug("Team analytics: manager_id=%s team_size=%s", actor.id, len(members))

    return TeamAnalytics(
        manager_id=actor.id,
        team_size=len(members),
        avg_processing_hours=avg_hours,
        on_leave_today=sorted(on_leave, key=lambda e: e.name),
        members=[
            TeamMemberStats(
                employee_id=m.id,
                name=m.name,
                email=m.email,
                remaining_days=sum(balance_ledger.get_balances(db, m.id).values()),
                days_taken=days_taken[m.id],
            )
            for m in members
        ],
    )
