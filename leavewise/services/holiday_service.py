"""
Holiday calendar service - business logic for holiday management
"""
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from leavewise.core.errors import NotFound, ValidationError
from leavewise.models.audit_log import AuditAction
from leavewise.models.holiday import Holiday, HolidayType
from leavewise.services.audit_service import log_audit
from leavewise.utils.datetime_utils import now_utc


@dataclass(frozen=True)
class HolidayOccurrence:
    """A holiday on a concrete date; recurring holidays yield one per year"""
    id: int
    name: str
    date: date
    type: HolidayType
    is_recurring: bool
    year: int


def project_to_year(original: date, year: int) -> date:
    """Same month/day in `year`; Feb 29 falls back to Feb 28 in non-leap years"""
    try:
        return original.replace(year=year)
    except ValueError:
        return original.replace(year=year, day=28)


def _occurrence(holiday: Holiday, on: date) -> HolidayOccurrence:
    return HolidayOccurrence(
        id=holiday.id,
        name=holiday.name,
        date=on,
        type=HolidayType(holiday.type),
        is_recurring=holiday.is_recurring,
        year=on.year,
    )


def create_holiday(
    db: Session,
    name: str,
    holiday_date: date,
    holiday_type: HolidayType = HolidayType.COMPANY,
    is_recurring: bool = False,
    actor_id: Optional[int] = None,
) -> Holiday:
    """
    Create a new holiday

    Raises:
        ValidationError: If a holiday already exists on that date
    """
    existing = db.query(Holiday).filter(Holiday.date == holiday_date).first()
    if existing:
        raise ValidationError(f"Holiday already exists for date {holiday_date}")

    # Explicitly set created_at/updated_at to avoid SQLite issues with server_default
    now = now_utc()
    holiday = Holiday(
        year=holiday_date.year,
        date=holiday_date,
        name=name.strip(),
        type=HolidayType(holiday_type),
        is_recurring=is_recurring,
        created_at=now,
        updated_at=now,
    )
    db.add(holiday)
    db.flush()
    log_audit(
        db,
        actor_id=actor_id,
        action=AuditAction.CREATE.value,
        target_model="Holiday",
        target_id=holiday.id,
        changes={"after": {"name": holiday.name, "date": holiday_date, "type": holiday.type, "is_recurring": is_recurring}},
        commit=False,
    )
    db.commit()
    db.refresh(holiday)
    return holiday


def get_holiday(db: Session, holiday_id: int) -> Holiday:
    holiday = db.query(Holiday).filter(Holiday.id == holiday_id).first()
    if not holiday:
        raise NotFound(f"Holiday with id {holiday_id} not found")
    return holiday


def update_holiday(db: Session, holiday_id: int, changes: dict, actor_id: Optional[int] = None) -> Holiday:
    holiday = get_holiday(db, holiday_id)
    before = {"name": holiday.name, "date": holiday.date, "type": holiday.type, "is_recurring": holiday.is_recurring}

    new_date = changes.get("date")
    if new_date is not None and new_date != holiday.date:
        clash = db.query(Holiday).filter(Holiday.date == new_date, Holiday.id != holiday_id).first()
        if clash:
            raise ValidationError(f"Holiday already exists for date {new_date}")
        holiday.date = new_date
        holiday.year = new_date.year
    if changes.get("name") is not None:
        holiday.name = changes["name"].strip()
    if changes.get("type") is not None:
        holiday.type = HolidayType(changes["type"])
    if changes.get("is_recurring") is not None:
        holiday.is_recurring = changes["is_recurring"]
    holiday.updated_at = now_utc()

    log_audit(
        db,
        actor_id=actor_id,
        action=AuditAction.UPDATE.value,
        target_model="Holiday",
        target_id=holiday.id,
        changes={
            "before": before,
            "after": {"name": holiday.name, "date": holiday.date, "type": holiday.type, "is_recurring": holiday.is_recurring},
        },
        commit=False,
    )
    db.commit()
    db.refresh(holiday)
    return holiday


def delete_holiday(db: Session, holiday_id: int, actor_id: Optional[int] = None) -> None:
    holiday = get_holiday(db, holiday_id)
    log_audit(
        db,
        actor_id=actor_id,
        action=AuditAction.DELETE.value,
        target_model="Holiday",
        target_id=holiday.id,
        changes={"before": {"name": holiday.name, "date": holiday.date}},
        commit=False,
    )
    db.delete(holiday)
    db.commit()


def list_holidays(
    db: Session,
    year: int,
    holiday_type: Optional[HolidayType] = None,
) -> List[HolidayOccurrence]:
    """
    Holidays falling in `year`, including recurring holidays created in other
    years projected onto the same month/day. Sorted by date.
    """
    query = db.query(Holiday)
    if holiday_type:
        query = query.filter(Holiday.type == HolidayType(holiday_type))
    rows = query.filter((Holiday.year == year) | (Holiday.is_recurring.is_(True))).all()

    by_date = {}
    for holiday in rows:
        on = holiday.date if holiday.year == year else project_to_year(holiday.date, year)
        # A holiday actually stored for this year wins over a projection
        if on not in by_date or holiday.year == year:
            by_date[on] = _occurrence(holiday, on)
    return [by_date[d] for d in sorted(by_date)]


def holidays_between(db: Session, start: date, end: date) -> List[HolidayOccurrence]:
    """Every holiday occurrence in [start, end], recurring ones expanded per year"""
    occurrences = []
    for year in range(start.year, end.year + 1):
        occurrences.extend(h for h in list_holidays(db, year) if start <= h.date <= end)
    return occurrences
