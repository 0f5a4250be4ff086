"""
Burnout risk scoring.

A transparent weighted sum over four factors, each scored 0-100:

  factor               weight   scoring
  consecutive stretch  0.30     >45 days without leave: 100, >30: 60, else days/45*40
  utilization          0.25     taken/(taken+remaining) <20%: 80, <40%: 40, else 10
  frequency            0.20     approved leaves applied in last 3 months: 0 -> 70, >=5 -> 60, else 15
  sick mix             0.25     approved sick leaves applied in last month: >=3 -> 90, >=2 -> 50, else 5

score_burnout is pure: same history, balances and `today` in, same result out.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from leavewise.core.errors import NotFound
from leavewise.models.employee import Employee
from leavewise.models.leave import LeaveRequest, LeaveStatus, LeaveType
from leavewise.services import balance_ledger
from leavewise.services.leave_service import managed_employee_ids

logger = logging.getLogger(__name__)

WEIGHTS = {
    "consecutive": 0.30,
    "utilization": 0.25,
    "frequency": 0.20,
    "sick_leave": 0.25,
}

HIGH_CONSECUTIVE_DAYS = 45
MODERATE_CONSECUTIVE_DAYS = 30
LOW_UTILIZATION_RATIO = 0.20
HIGH_SICK_FREQUENCY = 3

# Scores above this are "High" or worse
HIGH_RISK_THRESHOLD = 60


@dataclass(frozen=True)
class LeaveRecord:
    """The slice of a leave request the advisory engine reads"""
    leave_type: str
    status: str
    start_date: date
    end_date: date
    total_days: int
    applied_on: date


@dataclass
class BurnoutResult:
    score: int
    category: str
    factors: List[str]
    recommendations: List[str]
    raw_scores: Dict[str, float]
    days_since_last_leave: int
    employee_id: Optional[int] = None
    weights: Dict[str, float] = field(default_factory=lambda: dict(WEIGHTS))
    label: str = "Rule-Based Burnout Assessment"


@dataclass
class TeamMemberBurnout:
    employee_id: int
    name: str
    score: int
    category: str


@dataclass
class TeamBurnoutResult:
    manager_id: int
    average_score: int
    team_size: int
    high_risk_count: int
    members: List[TeamMemberBurnout]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def categorize(score: int) -> str:
    if score <= 30:
        return "Low"
    if score <= 60:
        return "Moderate"
    if score <= 80:
        return "High"
    return "Critical"


def days_since_last_leave(history: Iterable[LeaveRecord], join_date: date, today: date) -> int:
    """Days since the end of the latest approved leave that has ended, else since joining"""
    ended = [r.end_date for r in history if r.status == LeaveStatus.APPROVED.value and r.end_date <= today]
    anchor = max(ended) if ended else join_date
    return max(0, (today - anchor).days)


def score_burnout(
    history: Iterable[LeaveRecord],
    balances: Mapping[str, int],
    join_date: date,
    today: date,
    employee_id: Optional[int] = None,
) -> BurnoutResult:
    history = list(history)
    approved = [r for r in history if r.status == LeaveStatus.APPROVED.value]
    factors = []
    raw = {}

    # Consecutive working stretch without leave
    gap = days_since_last_leave(history, join_date, today)
    if gap > HIGH_CONSECUTIVE_DAYS:
        raw["consecutive"] = 100
        factors.append(f"{gap} consecutive days without leave (high risk threshold: {HIGH_CONSECUTIVE_DAYS})")
    elif gap > MODERATE_CONSECUTIVE_DAYS:
        raw["consecutive"] = 60
        factors.append(f"{gap} consecutive days without leave (moderate)")
    else:
        raw["consecutive"] = max(0.0, gap / HIGH_CONSECUTIVE_DAYS * 40)
        factors.append(f"{gap} consecutive days without leave")

    # Utilization: days taken against days taken plus days remaining
    taken = sum(r.total_days for r in approved)
    allocated = taken + sum(balances.values())
    ratio = taken / allocated if allocated > 0 else 0.0
    pct = round_half_up(ratio * 100)
    if ratio < LOW_UTILIZATION_RATIO:
        raw["utilization"] = 80
        factors.append(f"Leave utilization at {pct}%, below {int(LOW_UTILIZATION_RATIO * 100)}% (leave hoarding indicator)")
    elif ratio < 0.4:
        raw["utilization"] = 40
        factors.append(f"Leave utilization at {pct}%, moderate usage")
    else:
        raw["utilization"] = 10
        factors.append(f"Leave utilization at {pct}%, healthy")

    # Frequency over the last three months
    recent = sum(1 for r in approved if r.applied_on >= today - relativedelta(months=3))
    if recent == 0:
        raw["frequency"] = 70
        factors.append("No leaves taken in the past 3 months")
    elif recent >= 5:
        raw["frequency"] = 60
        factors.append(f"{recent} leaves in past 3 months, potential stress indicator")
    else:
        raw["frequency"] = 15
        factors.append(f"{recent} leave(s) in past 3 months, normal pattern")

    # Sick leave mix over the last month
    sick = sum(
        1 for r in approved
        if r.leave_type == LeaveType.SICK.value and r.applied_on >= today - relativedelta(months=1)
    )
    if sick >= HIGH_SICK_FREQUENCY:
        raw["sick_leave"] = 90
        factors.append(f"{sick} sick leaves this month (threshold: {HIGH_SICK_FREQUENCY})")
    elif sick >= 2:
        raw["sick_leave"] = 50
        factors.append(f"{sick} sick leave(s) this month")
    else:
        raw["sick_leave"] = 5
        factors.append(f"{sick} sick leave(s) this month, normal")

    score = round_half_up(sum(raw[name] * weight for name, weight in WEIGHTS.items()))
    score = max(0, min(100, score))

    recommendations = []
    if score > HIGH_RISK_THRESHOLD:
        recommendations.append("Consider taking a break soon to maintain well-being")
        recommendations.append("Review workload distribution with your manager")
    if raw["consecutive"] > 60:
        recommendations.append("Schedule a short leave to reset; even 1-2 days helps")
    if raw["utilization"] > 50:
        recommendations.append("You have unused leave balance; plan time off proactively")

    return BurnoutResult(
        employee_id=employee_id,
        score=score,
        category=categorize(score),
        factors=factors,
        recommendations=recommendations,
        raw_scores=raw,
        days_since_last_leave=gap,
    )


def load_history(db: Session, employee_id: int) -> List[LeaveRecord]:
    rows = (
        db.query(LeaveRequest)
        .filter(LeaveRequest.employee_id == employee_id)
        .order_by(LeaveRequest.start_date)
        .all()
    )
    return [
        LeaveRecord(
            leave_type=LeaveType(r.leave_type).value,
            status=LeaveStatus(r.status).value,
            start_date=r.start_date,
            end_date=r.end_date,
            total_days=r.total_days,
            applied_on=r.applied_at.date() if r.applied_at else r.start_date,
        )
        for r in rows
    ]


def get_burnout(db: Session, employee_id: int, today: date) -> BurnoutResult:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound(f"Employee with id {employee_id} not found")
    result = score_burnout(
        load_history(db, employee_id),
        balance_ledger.get_balances(db, employee_id),
        employee.join_date,
        today,
        employee_id=employee_id,
    )
    logger.info("Burnout scored: employee_id=%s score=%s category=%s", employee_id, result.score, result.category)
    return result


def team_burnout(db: Session, manager_id: int, today: date) -> TeamBurnoutResult:
    """Scores for the manager's active reports, highest risk first"""
    member_ids = managed_employee_ids(db, manager_id)
    members = []
    if member_ids:
        employees = (
            db.query(Employee)
            .filter(Employee.id.in_(member_ids), Employee.active.is_(True))
            .order_by(Employee.id)
            .all()
        )
        for employee in employees:
            result = get_burnout(db, employee.id, today)
            members.append(TeamMemberBurnout(
                employee_id=employee.id,
                name=employee.name,
                score=result.score,
                category=result.category,
            ))
    members.sort(key=lambda m: m.score, reverse=True)

    average = round_half_up(sum(m.score for m in members) / len(members)) if members else 0
    return TeamBurnoutResult(
        manager_id=manager_id,
        average_score=average,
        team_size=len(members),
        high_risk_count=sum(1 for m in members if m.score > HIGH_RISK_THRESHOLD),
        members=members,
    )
