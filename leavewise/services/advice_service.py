"""
Leave-timing advice and manager rejection-reason templates.

score_leave_timing adjusts a base score of 70:
  balance <= 2: -20, balance >= 10: +10
  team overlap >= 3: -25, no overlap: +15
  a holiday within a month either side of the range: +5
  2+ approved leaves started in the past month: -10
then clamps to 0-100.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from leavewise.core.errors import NotFound
from leavewise.models.employee import Employee
from leavewise.models.leave import LeaveRequest, LeaveStatus, LeaveType, ACTIVE_LEAVE_STATUSES
from leavewise.services import balance_ledger
from leavewise.services.holiday_service import holidays_between

logger = logging.getLogger(__name__)

BASE_SCORE = 70
ALTERNATIVE_WEEKS = 3
ALTERNATIVE_LENGTH_DAYS = 3


@dataclass
class AlternativeWindow:
    start_date: date
    end_date: date
    team_conflicts: int
    note: str


@dataclass
class AdviceResult:
    score: int
    recommendation: str
    factors: List[str]
    alternatives: List[AlternativeWindow] = field(default_factory=list)
    label: str = "Heuristic-Based Analysis"


@dataclass
class RejectionSuggestion:
    suggestion: str
    reason_code: str
    is_editable: bool = True
    label: str = "Suggested; please review and edit as needed"


REJECTION_TEMPLATES = {
    "team_coverage": (
        "Due to limited team coverage during the requested period, we are unable to approve this leave "
        "at this time. Please consider selecting alternative dates when more team members are available."
    ),
    "project_deadline": (
        "A critical project deadline falls within your requested leave period. We kindly ask you to "
        "reschedule to ensure project continuity. Please coordinate with your project lead."
    ),
    "short_notice": (
        "The leave request was submitted with insufficient advance notice per company policy. Please "
        "submit future requests at least 5 business days in advance."
    ),
    "balance_insufficient": (
        "Your current leave balance is insufficient for the requested duration. Please review your "
        "available balance and adjust your request accordingly."
    ),
    "peak_period": (
        "The requested dates fall within a peak business period. Leave approvals are limited during "
        "this time. Please consider an alternative timeframe."
    ),
    "default": (
        "After careful review, we are unable to approve this leave request at this time. Please reach "
        "out to your manager for further discussion and alternative arrangements."
    ),
}


def recommendation_for(score: int) -> str:
    if score >= 70:
        return "Good time to take leave"
    if score >= 40:
        return "Acceptable, but consider alternatives"
    return "Consider rescheduling for better team coverage"


def score_leave_timing(
    balance: int,
    team_overlap: Optional[int],
    holidays_nearby: int,
    recent_leaves: int,
    alternatives: Optional[List[AlternativeWindow]] = None,
) -> AdviceResult:
    """
    Pure scoring over already-gathered signals. `team_overlap` is None when
    no date range was given.
    """
    score = BASE_SCORE
    factors = []

    if balance <= 2:
        score -= 20
        factors.append("Low remaining balance for this leave type")
    elif balance >= 10:
        score += 10
        factors.append("Sufficient balance available")

    if team_overlap is not None:
        if team_overlap >= 3:
            score -= 25
            factors.append(f"{team_overlap} team members already on leave during this period")
        elif team_overlap == 0:
            score += 15
            factors.append("No team members on leave; good team coverage")
        else:
            factors.append(f"{team_overlap} team member(s) on leave during this period")

    if holidays_nearby > 0:
        score += 5
        factors.append("Leave close to a public holiday; efficient use of days")

    if recent_leaves >= 2:
        score -= 10
        factors.append("Multiple leaves taken in the past month")

    score = max(0, min(100, score))
    return AdviceResult(
        score=score,
        recommendation=recommendation_for(score),
        factors=factors,
        alternatives=list(alternatives or []),
    )


def team_member_ids(db: Session, employee: Employee) -> List[int]:
    """Colleagues whose absence affects coverage: same department, else same manager"""
    query = db.query(Employee.id).filter(Employee.id != employee.id, Employee.active.is_(True))
    if employee.department_id:
        query = query.filter(Employee.department_id == employee.department_id)
    elif employee.manager_id:
        query = query.filter(Employee.manager_id == employee.manager_id)
    else:
        return []
    return [row[0] for row in query.all()]


def count_team_overlap(db: Session, member_ids: List[int], start: date, end: date) -> int:
    if not member_ids:
        return 0
    return (
        db.query(LeaveRequest)
        .filter(
            LeaveRequest.employee_id.in_(member_ids),
            LeaveRequest.status.in_(ACTIVE_LEAVE_STATUSES),
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
        .count()
    )


def alternative_windows(db: Session, member_ids: List[int], start: date) -> List[AlternativeWindow]:
    """Three-day windows one, two and three weeks later, fewest team conflicts first"""
    windows = []
    for week in range(1, ALTERNATIVE_WEEKS + 1):
        alt_start = start + timedelta(weeks=week)
        alt_end = alt_start + timedelta(days=ALTERNATIVE_LENGTH_DAYS - 1)
        conflicts = count_team_overlap(db, member_ids, alt_start, alt_end)
        windows.append(AlternativeWindow(
            start_date=alt_start,
            end_date=alt_end,
            team_conflicts=conflicts,
            note="No team conflicts" if conflicts == 0 else f"{conflicts} team member(s) on leave",
        ))
    return sorted(windows, key=lambda w: w.team_conflicts)


def get_leave_advice(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    start_date: Optional[date],
    end_date: Optional[date],
    today: date,
) -> AdviceResult:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound(f"Employee with id {employee_id} not found")

    leave_type = LeaveType(leave_type)
    balance = balance_ledger.get_balance(db, employee_id, leave_type)
    members = team_member_ids(db, employee)

    team_overlap = None
    holidays_nearby = 0
    alternatives = []
    if start_date:
        end_date = end_date or start_date
        team_overlap = count_team_overlap(db, members, start_date, end_date)
        holidays_nearby = len(holidays_between(
            db, start_date - relativedelta(months=1), end_date + relativedelta(months=1)
        ))
        alternatives = alternative_windows(db, members, start_date)

    recent_leaves = (
        db.query(LeaveRequest)
        .filter(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.start_date >= today - relativedelta(months=1),
        )
        .count()
    )

    result = score_leave_timing(balance, team_overlap, holidays_nearby, recent_leaves, alternatives)
    logger.info(
        "Leave advice: employee_id=%s leave_type=%s score=%s overlap=%s",
        employee_id, leave_type.value, result.score, team_overlap,
    )
    return result


def suggest_rejection_reason(
    reason_code: Optional[str],
    leave_request: Optional[LeaveRequest] = None,
) -> RejectionSuggestion:
    """Editable manager-facing text for a rejection, optionally mentioning the request"""
    code = reason_code if reason_code in REJECTION_TEMPLATES else "default"
    text = REJECTION_TEMPLATES[code]
    if leave_request is not None:
        text += (
            f" This applies to your {LeaveType(leave_request.leave_type).value} leave request "
            f"for {leave_request.total_days} day(s)."
        )
    return RejectionSuggestion(suggestion=text, reason_code=code)
