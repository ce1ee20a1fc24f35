"""
Day-of-year encoding on a fixed 366-day calendar.

February always has 29 days, so every (month, day) a person can be born on
has a stable slot from 1 (January 1st) to 366 (December 31st) that does not
depend on whether the current year is a leap year.
"""

from __future__ import annotations

import datetime
from typing import Tuple

from tickcord.timer.errors import InvalidCalendarInput

DAYS_IN_YEAR = 366
MONTHS = 12

# Days elapsed before the first of each month, February fixed at 29 days
DAYS_BEFORE_MONTH: Tuple[int, ...] = (0, 31, 60, 91, 121, 152, 182, 213, 244, 274, 305, 335)

DAYS_IN_MONTH: Tuple[int, ...] = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def day_of_year(month: int, day: int) -> int:
    """
    Map a month and day to its 1-based slot on the 366-day calendar.

    Only the nominal ranges (month 1-12, day 1-31) are checked; whether the
    day exists in that month is the caller's concern, see :func:`is_valid_date`.

    Raises:
        InvalidCalendarInput: month or day outside the nominal range.
    """
    if not 1 <= month <= MONTHS:
        raise InvalidCalendarInput(f"Month must be between 1 and 12, got {month}")
    if not 1 <= day <= 31:
        raise InvalidCalendarInput(f"Day must be between 1 and 31, got {day}")
    return DAYS_BEFORE_MONTH[month - 1] + day


def month_and_day(value: int) -> Tuple[int, int]:
    """
    Inverse of :func:`day_of_year`.

    Scans the month thresholds from February onwards; the first threshold
    that reaches ``value`` means the date lies in the previous month.

    Raises:
        InvalidCalendarInput: value outside 1-366.
    """
    if not 1 <= value <= DAYS_IN_YEAR:
        raise InvalidCalendarInput(f"Day of year must be between 1 and {DAYS_IN_YEAR}, got {value}")

    days_before_previous = 0
    for month in range(2, MONTHS + 1):
        threshold = DAYS_BEFORE_MONTH[month - 1]
        if threshold >= value:
            return month - 1, value - days_before_previous
        days_before_previous = threshold
    return MONTHS, value - days_before_previous


def is_valid_date(month: int, day: int) -> bool:
    """Return True if ``day`` exists in ``month`` (February accepts the 29th)."""
    if not 1 <= month <= MONTHS:
        return False
    return 1 <= day <= DAYS_IN_MONTH[month - 1]


def today_day_of_year(today: datetime.date | None = None) -> int:
    """Day-of-year slot for ``today`` (defaults to the local date)."""
    today = today or datetime.date.today()
    return day_of_year(today.month, today.day)
