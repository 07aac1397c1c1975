"""Local calendar windows for daily and monthly goals.

All values are naive local datetimes. Window ends are inclusive and carry
millisecond precision (23:59:59.999) to match the POS API.
"""

import calendar
from datetime import datetime, timedelta
from typing import Optional

from posgoals.pos.models import SalesGoal, Track

END_OF_DAY = dict(hour=23, minute=59, second=59, microsecond=999000)


def day_window(now: datetime) -> tuple[datetime, datetime]:
    """Start and end of the local calendar day containing ``now``."""
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start.replace(**END_OF_DAY)


def month_window(now: datetime) -> tuple[datetime, datetime]:
    """Start and end of the local calendar month containing ``now``."""
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    _, last = calendar.monthrange(now.year, now.month)
    return start, start.replace(day=last, **END_OF_DAY)


def window_for(track: Track, now: datetime) -> tuple[datetime, datetime]:
    if track == Track.daily:
        return day_window(now)
    return month_window(now)


def previous_month(now: datetime) -> tuple[int, int]:
    """(year, month) of the calendar month before ``now``."""
    first = now.replace(day=1)
    prev = first - timedelta(days=1)
    return prev.year, prev.month


def days_remaining_in_month(now: datetime) -> int:
    """Days left in the month including today, never less than 1."""
    _, last = calendar.monthrange(now.year, now.month)
    return max(1, last - now.day + 1)


def hours_remaining_in_day(now: datetime) -> int:
    return max(0, 24 - now.hour)


def days_remaining_after_today(now: datetime) -> int:
    _, last = calendar.monthrange(now.year, now.month)
    return max(0, last - now.day)


def daily_period_key(now: datetime) -> str:
    return now.strftime("%Y-%m-%d")


def monthly_period_key(now: datetime) -> str:
    return now.strftime("%Y-%m")


def period_key(track: Track, now: datetime) -> str:
    if track == Track.daily:
        return daily_period_key(now)
    return monthly_period_key(now)


def overlaps(goal: SalesGoal, start: datetime, end: datetime) -> bool:
    """
    Check whether a goal's period overlaps [start, end].

    Goals missing either bound are legacy/manual entries and always match.
    """
    if goal.period_start is None or goal.period_end is None:
        return True
    return goal.period_start <= end and goal.period_end >= start


def is_current(goal: Optional[SalesGoal], now: datetime) -> bool:
    """Whether ``goal`` is valid for its track's window containing ``now``."""
    if goal is None:
        return False
    start, end = window_for(goal.goal_type, now)
    return overlaps(goal, start, end)


def starts_in_month(goal: SalesGoal, year: int, month: int) -> bool:
    if goal.period_start is None or goal.period_end is None:
        return False
    return goal.period_start.year == year and goal.period_start.month == month
