"""
Working-day arithmetic for leave requests.

A working day is Monday through Friday. Holidays are deliberately NOT excluded:
the holiday calendar only feeds the advisory engine, never total_days.
"""
from datetime import date, timedelta
from typing import Iterator


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5  # Saturday=5, Sunday=6


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every calendar date in [start, end] inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def count_working_days(start: date, end: date) -> int:
    """
    Count Mon-Fri dates in [start, end] inclusive.

    This count, not the calendar span, is a leave request's total_days and is
    what gets checked against balance and the consecutive-day policy.
    Returns 0 when start > end.
    """
    return sum(1 for d in iter_dates(start, end) if not is_weekend(d))


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """True when two inclusive date ranges share at least one day."""
    return a_start <= b_end and b_start <= a_end


def duration_label(total_days: int) -> str:
    """Human-readable duration; a working week is five days."""
    if total_days == 1:
        return "1 day"
    if total_days < 7:
        return f"{total_days} days"
    weeks, remaining = divmod(total_days, 5)
    label = f"{weeks} week{'s' if weeks > 1 else ''}"
    if remaining:
        label += f" {remaining} day{'s' if remaining > 1 else ''}"
    return label
