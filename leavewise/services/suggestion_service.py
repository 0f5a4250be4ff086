"""
Proactive leave suggestions and leave-demand forecasting.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from leavewise.core.config import settings
from leavewise.core.errors import NotFound
from leavewise.models.employee import Employee
from leavewise.models.leave import LeaveStatus
from leavewise.services import balance_ledger
from leavewise.services.burnout_service import LeaveRecord, get_burnout, load_history, round_half_up
from leavewise.services.holiday_service import HolidayOccurrence, holidays_between
from leavewise.utils.leave_calendar import is_weekend

logger = logging.getLogger(__name__)

MIN_GAP_DAYS = 30
UPCOMING_HOLIDAY_MONTHS = 2
MAX_UPCOMING_HOLIDAYS = 5
MAX_WINDOWS = 3


@dataclass
class SuggestedWindow:
    start_date: date
    end_date: date
    reason: str
    type: str


@dataclass
class SuggestionResult:
    should_suggest: bool
    days_since_last_leave: int
    burnout_score: int
    remaining_balance: int = 0
    message: Optional[str] = None
    windows: List[SuggestedWindow] = field(default_factory=list)
    upcoming_holidays: List[HolidayOccurrence] = field(default_factory=list)


@dataclass
class MonthDemand:
    month: str
    count: int
    total_days: int
    type: str


@dataclass
class ForecastResult:
    historical: List[MonthDemand]
    forecast: List[MonthDemand]
    methodology: str = "Trend-based forecast: 60% recent 3-month average + 40% same month"
    disclaimer: str = "Forecasted values are trend-based estimates for planning purposes only"


def _js_weekday(d: date) -> int:
    """Sunday=0 .. Saturday=6"""
    return (d.weekday() + 1) % 7


def suggest_windows(today: date, upcoming_holidays: Sequence[HolidayOccurrence]) -> List[SuggestedWindow]:
    """
    Up to three windows: the working day before the next holiday, a Friday
    for a long weekend next week, and a mid-week Wednesday the week after.
    """
    windows = []

    if upcoming_holidays:
        holiday = upcoming_holidays[0]
        before = holiday.date - timedelta(days=1)
        if not is_weekend(before) and before > today:
            windows.append(SuggestedWindow(
                start_date=before,
                end_date=holiday.date,
                reason=f"Adjacent to {holiday.name}; more time off for fewer leave days",
                type="holiday_adjacent",
            ))

    next_week = today + timedelta(days=7)
    friday = next_week + timedelta(days=5 - _js_weekday(next_week))
    windows.append(SuggestedWindow(
        start_date=friday,
        end_date=friday,
        reason="Long weekend; one day off for a 3-day break",
        type="long_weekend",
    ))

    wednesday = today + timedelta(days=(3 - _js_weekday(today) + 7) % 7 + 7)
    if len(windows) < MAX_WINDOWS:
        windows.append(SuggestedWindow(
            start_date=wednesday,
            end_date=wednesday,
            reason="Mid-week break; recharge without disrupting the full week",
            type="midweek_break",
        ))
    return windows[:MAX_WINDOWS]


def build_suggestions(
    days_since_last_leave: int,
    burnout_score: int,
    remaining_balance: int,
    upcoming_holidays: Sequence[HolidayOccurrence],
    today: date,
    burnout_threshold: Optional[int] = None,
) -> SuggestionResult:
    """Suggest when the leave gap reaches 30 days or burnout exceeds the threshold"""
    threshold = settings.BURNOUT_SUGGESTION_THRESHOLD if burnout_threshold is None else burnout_threshold
    should_suggest = days_since_last_leave >= MIN_GAP_DAYS or burnout_score > threshold
    if not should_suggest:
        return SuggestionResult(
            should_suggest=False,
            days_since_last_leave=days_since_last_leave,
            burnout_score=burnout_score,
            remaining_balance=remaining_balance,
        )

    if days_since_last_leave >= MIN_GAP_DAYS:
        message = f"You haven't taken a break in {days_since_last_leave} days."
    else:
        message = f"Your burnout risk score is {burnout_score}/100."
    message += f" You have {remaining_balance} leave days remaining."

    return SuggestionResult(
        should_suggest=True,
        days_since_last_leave=days_since_last_leave,
        burnout_score=burnout_score,
        remaining_balance=remaining_balance,
        message=message,
        windows=suggest_windows(today, upcoming_holidays),
        upcoming_holidays=list(upcoming_holidays)[:MAX_UPCOMING_HOLIDAYS],
    )


def get_suggestions(db: Session, employee_id: int, today: date) -> SuggestionResult:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound(f"Employee with id {employee_id} not found")

    burnout = get_burnout(db, employee_id, today)
    balances = balance_ledger.get_balances(db, employee_id)
    upcoming = holidays_between(db, today, today + relativedelta(months=UPCOMING_HOLIDAY_MONTHS))
    return build_suggestions(
        days_since_last_leave=burnout.days_since_last_leave,
        burnout_score=burnout.score,
        remaining_balance=sum(balances.values()),
        upcoming_holidays=upcoming[:MAX_UPCOMING_HOLIDAYS],
        today=today,
    )


def forecast_leave_demand(records: Iterable[LeaveRecord], today: date, months: int = 3) -> ForecastResult:
    """
    Approved-leave demand per month for the past 12 months, and a forecast for
    the next `months`: 60% the average of the last three historical months plus
    40% the same calendar month's history (the recent average when absent).
    """
    history_start = (today - relativedelta(months=12)).replace(day=1)
    grouped = OrderedDict()
    for record in sorted(records, key=lambda r: r.applied_on):
        if record.status != LeaveStatus.APPROVED.value or record.applied_on < history_start:
            continue
        key = (record.applied_on.year, record.applied_on.month)
        count, days = grouped.get(key, (0, 0))
        grouped[key] = (count + 1, days + record.total_days)

    historical = [
        MonthDemand(month=f"{y}-{m:02d}", count=c, total_days=d, type="historical")
        for (y, m), (c, d) in grouped.items()
    ]

    recent = [h.count for h in historical[-3:]]
    recent_avg = sum(recent) / len(recent) if recent else 0.0
    total_count = sum(h.count for h in historical)
    avg_days = sum(h.total_days for h in historical) / total_count if total_count else 2

    forecast = []
    for i in range(1, months + 1):
        target = today + relativedelta(months=i)
        same_month = next(((c, d) for (y, m), (c, d) in grouped.items() if m == target.month), None)
        seasonal = same_month[0] if same_month else recent_avg
        value = round_half_up(recent_avg * 0.6 + seasonal * 0.4)
        forecast.append(MonthDemand(
            month=f"{target.year}-{target.month:02d}",
            count=value,
            total_days=round_half_up(value * avg_days),
            type="forecast",
        ))
    return ForecastResult(historical=historical, forecast=forecast)


def get_forecast(db: Session, today: date, months: int = 3, department_id: Optional[int] = None) -> ForecastResult:
    query = db.query(Employee.id)
    if department_id is not None:
        query = query.filter(Employee.department_id == department_id)
    records = []
    for (employee_id,) in query.all():
        records.extend(load_history(db, employee_id))
    return forecast_leave_demand(records, today, months)
