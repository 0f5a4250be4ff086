"""
Natural-language leave request parsing.

Keyword and pattern matching only; no external model. The output is a draft
for the apply form, so low-confidence results are flagged for confirmation
rather than submitted.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta, MO, TU, WE, TH, FR, SU

from leavewise.core.config import settings
from leavewise.models.leave import LeaveType
from leavewise.utils.leave_calendar import count_working_days, is_weekend

logger = logging.getLogger(__name__)

LEAVE_TYPE_KEYWORDS = {
    LeaveType.SICK: ["sick", "unwell", "ill", "medical", "doctor", "hospital", "health", "fever"],
    LeaveType.ANNUAL: ["annual", "vacation", "holiday", "planned", "rest"],
    LeaveType.PERSONAL: ["personal", "family", "emergency", "urgent", "private"],
    LeaveType.MATERNITY: ["maternity", "pregnancy", "prenatal"],
    LeaveType.PATERNITY: ["paternity", "newborn", "baby"],
}

WEEKDAYS = {
    "monday": MO,
    "tuesday": TU,
    "wednesday": WE,
    "thursday": TH,
    "friday": FR,
}

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_MONTH = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sept?(?:ember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
DAY_MONTH_RE = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)?\s*" + _MONTH + r"\b")
MONTH_DAY_RE = re.compile(r"\b" + _MONTH + r"\s*(\d{1,2})(?:st|nd|rd|th)?\b")
ISO_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
DURATION_RE = re.compile(r"\b(\d{1,3})\s*(?:working\s+)?days?\b")
DAY_PAIR_RE = re.compile(r"\b(monday|tuesday|wednesday|thursday|friday)\s+and\s+(monday|tuesday|wednesday|thursday|friday)\b")

MAX_DURATION_DAYS = 180

DATE_CONFIDENCE = 0.5
TYPE_CONFIDENCE = 0.25
RANGE_CONFIDENCE = 0.2
MAX_CONFIDENCE = 0.95
NO_DATE_TYPE_CONFIDENCE = 0.1


@dataclass
class ParsedLeave:
    original: str
    leave_type: str = LeaveType.ANNUAL.value
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_days: Optional[int] = None
    confidence: float = 0.0
    confidence_label: str = "low"
    parsed: bool = False
    needs_confirmation: bool = True


def confidence_label(confidence: float) -> str:
    if confidence >= 0.7:
        return "high"
    if confidence >= 0.4:
        return "medium"
    return "low"


def _has_word(text: str, word: str) -> bool:
    return re.search(r"\b" + re.escape(word) + r"\b", text) is not None


def _detect_leave_type(text: str) -> Optional[LeaveType]:
    for leave_type, keywords in LEAVE_TYPE_KEYWORDS.items():
        if any(_has_word(text, kw) for kw in keywords):
            return leave_type
    return None


def _next_weekday(today: date, name: str) -> date:
    """The first `name` strictly after today"""
    return today + relativedelta(days=+1, weekday=WEEKDAYS[name](+1))


def _add_working_days(start: date, days: int) -> date:
    """Last date of a span holding `days` working days, starting at start"""
    current = start
    counted = 0 if is_weekend(start) else 1
    while counted < days:
        current += timedelta(days=1)
        if not is_weekend(current):
            counted += 1
    return current


def _explicit_date(text: str, today: date) -> Optional[date]:
    """'25 dec' / 'dec 25'; a date already past this year rolls to next year"""
    match = DAY_MONTH_RE.search(text)
    if match:
        day, month = int(match.group(1)), MONTHS[match.group(2)[:3]]
    else:
        match = MONTH_DAY_RE.search(text)
        if not match:
            return None
        month, day = MONTHS[match.group(1)[:3]], int(match.group(2))
    try:
        candidate = date(today.year, month, day)
        if candidate < today:
            candidate = date(today.year + 1, month, day)
    except ValueError:
        logger.debug("Ignoring impossible date in leave text: month=%s day=%s", month, day)
        return None
    return candidate


def _extract(text: str, today: date, threshold: float) -> ParsedLeave:
    result = ParsedLeave(original=text)
    lowered = text.lower().strip()

    detected = _detect_leave_type(lowered)
    if detected:
        result.leave_type = detected.value

    start = None
    end = None
    if _has_word(lowered, "tomorrow"):
        start = today + timedelta(days=1)
    if _has_word(lowered, "today"):
        start = today
    for name in WEEKDAYS:
        if _has_word(lowered, name):
            start = _next_weekday(today, name)
            break
    if "this week" in lowered:
        start = today
        end = today + relativedelta(weekday=SU)
    if "next week" in lowered:
        start = today - timedelta(days=today.weekday()) + timedelta(days=7)
        end = start + timedelta(days=4)

    explicit = _explicit_date(lowered, today)
    if explicit:
        start = explicit

    iso = ISO_RE.search(lowered)
    if iso:
        try:
            start = isoparse(iso.group(1)).date()
        except ValueError:
            logger.debug("Ignoring invalid ISO date in leave text: %s", iso.group(1))

    explicit_range = end is not None
    duration = DURATION_RE.search(lowered)
    if duration:
        days = int(duration.group(1))
        if 0 < days <= MAX_DURATION_DAYS:
            explicit_range = True
            if start and end is None:
                end = _add_working_days(start, days)

    pair = DAY_PAIR_RE.search(lowered)
    if pair and start:
        end = _next_weekday(today, pair.group(2))
        explicit_range = True

    if start is None:
        result.confidence = NO_DATE_TYPE_CONFIDENCE if detected else 0.0
        result.confidence_label = confidence_label(result.confidence)
        result.needs_confirmation = True
        return result

    if end is None or end < start:
        end = start
    result.start_date = start
    result.end_date = end
    result.total_days = count_working_days(start, end)
    result.parsed = True

    confidence = DATE_CONFIDENCE
    if detected:
        confidence += TYPE_CONFIDENCE
    if explicit_range:
        confidence += RANGE_CONFIDENCE
    result.confidence = round(min(confidence, MAX_CONFIDENCE), 2)
    result.confidence_label = confidence_label(result.confidence)
    result.needs_confirmation = result.confidence < threshold
    return result


def parse_leave_text(text: str, today: date, threshold: Optional[float] = None) -> ParsedLeave:
    """
    Parse free text such as "sick leave tomorrow for 2 days" into a leave draft.

    Never raises: unparseable input yields parsed=False with zero confidence.
    """
    threshold = settings.NLP_CONFIDENCE_THRESHOLD if threshold is None else threshold
    try:
        result = _extract(text or "", today, threshold)
    except (ValueError, OverflowError) as e:
        logger.warning("Leave text parse failed: %s", e)
        return ParsedLeave(original=text or "")
    logger.info(
        "Parsed leave text: leave_type=%s start=%s end=%s confidence=%s",
        result.leave_type, result.start_date, result.end_date, result.confidence,
    )
    return result
