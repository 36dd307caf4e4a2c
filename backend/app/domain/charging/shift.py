"""
Shift windows.

A timeslot maps to a half-open interval of local time:
- day   = [08:00, 20:00) of its date
- night = [20:00 of its date, 08:00 of the next date)
"""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Tuple

from backend.app.core.exceptions import InvalidInputError
from backend.app.models.enums import Timeslot

DAY_START = time(8, 0)
NIGHT_START = time(20, 0)

DATE_FORMAT = "%Y-%m-%d"
MONTH_FORMAT = "%Y-%m"


def parse_timeslot(value) -> Timeslot:
    """Accept a Timeslot or its token ("day" / "night")."""
    try:
        return Timeslot(value)
    except ValueError:
        raise InvalidInputError(
            f"Invalid timeslot '{value}', expected 'day' or 'night'",
            details={"timeslot": value}
        )


def parse_date(value) -> date:
    """Accept a date or a YYYY-MM-DD string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise InvalidInputError(
            f"Invalid date '{value}', expected YYYY-MM-DD",
            details={"date": value}
        )


def parse_month(value: str) -> Tuple[date, date]:
    """
    Parse a YYYY-MM string.

    Returns:
        (first day of the month, first day of the next month)
    """
    try:
        start = datetime.strptime(value, MONTH_FORMAT).date()
    except (TypeError, ValueError):
        raise InvalidInputError(
            f"Invalid month '{value}', expected YYYY-MM",
            details={"month": value}
        )
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def shift_window(day: date, timeslot: Timeslot, tz: tzinfo) -> Tuple[datetime, datetime]:
    """Return the [start, end) instants of a shift."""
    if timeslot == Timeslot.DAY:
        start = datetime.combine(day, DAY_START, tzinfo=tz)
        end = datetime.combine(day, NIGHT_START, tzinfo=tz)
    elif timeslot == Timeslot.NIGHT:
        start = datetime.combine(day, NIGHT_START, tzinfo=tz)
        end = datetime.combine(day + timedelta(days=1), DAY_START, tzinfo=tz)
    else:
        # Inputs are validated at the boundary; anything else is a bug.
        raise ValueError(f"Unknown timeslot: {timeslot!r}")
    return start, end


def shift_end(day: date, timeslot: Timeslot, tz: tzinfo) -> datetime:
    return shift_window(day, timeslot, tz)[1]


def is_shift_active(day: date, timeslot: Timeslot, now: datetime) -> bool:
    start, end = shift_window(day, timeslot, now.tzinfo)
    return start <= now < end


def has_shift_ended(day: date, timeslot: Timeslot, now: datetime) -> bool:
    return now >= shift_end(day, timeslot, now.tzinfo)
