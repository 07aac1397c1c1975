"""Tests for local calendar window helpers."""

from __future__ import annotations

from datetime import datetime

from posgoals.goals import periods
from posgoals.pos.models import Track
from tests.conftest import end_of_day, make_goal


class TestWindows:
    def test_day_window(self):
        start, end = periods.day_window(datetime(2024, 6, 15, 14, 30, 12))
        assert start == datetime(2024, 6, 15)
        assert end == end_of_day(2024, 6, 15)

    def test_month_window_30_days(self):
        start, end = periods.month_window(datetime(2024, 6, 15, 9))
        assert start == datetime(2024, 6, 1)
        assert end == end_of_day(2024, 6, 30)

    def test_month_window_leap_february(self):
        _, end = periods.month_window(datetime(2024, 2, 10))
        assert end == end_of_day(2024, 2, 29)

    def test_window_for_track(self):
        now = datetime(2024, 6, 15, 9)
        assert periods.window_for(Track.daily, now) == periods.day_window(now)
        assert periods.window_for(Track.monthly, now) == periods.month_window(now)


class TestCalendarMath:
    def test_previous_month(self):
        assert periods.previous_month(datetime(2024, 6, 1)) == (2024, 5)

    def test_previous_month_wraps_year(self):
        assert periods.previous_month(datetime(2024, 1, 1, 0, 5)) == (2023, 12)

    def test_days_remaining_includes_today(self):
        assert periods.days_remaining_in_month(datetime(2024, 6, 1)) == 30
        assert periods.days_remaining_in_month(datetime(2024, 6, 30, 22)) == 1

    def test_hours_remaining(self):
        assert periods.hours_remaining_in_day(datetime(2024, 6, 15, 15, 30)) == 9
        assert periods.hours_remaining_in_day(datetime(2024, 6, 15, 0, 1)) == 24

    def test_days_remaining_after_today(self):
        assert periods.days_remaining_after_today(datetime(2024, 6, 10)) == 20
        assert periods.days_remaining_after_today(datetime(2024, 6, 30)) == 0


class TestPeriodKeys:
    def test_daily_key(self):
        assert periods.daily_period_key(datetime(2024, 6, 5, 23)) == "2024-06-05"

    def test_monthly_key(self):
        assert periods.monthly_period_key(datetime(2024, 6, 5)) == "2024-06"

    def test_key_by_track(self):
        now = datetime(2024, 12, 31)
        assert periods.period_key(Track.daily, now) == "2024-12-31"
        assert periods.period_key(Track.monthly, now) == "2024-12"


class TestOverlap:
    def test_goal_inside_window(self):
        goal = make_goal(Track.daily, 100, datetime(2024, 6, 15), end_of_day(2024, 6, 15))
        start, end = periods.day_window(datetime(2024, 6, 15, 12))
        assert periods.overlaps(goal, start, end)

    def test_goal_ending_before_window(self):
        goal = make_goal(Track.daily, 100, datetime(2024, 6, 14), end_of_day(2024, 6, 14))
        start, end = periods.day_window(datetime(2024, 6, 15, 0, 0, 1))
        assert not periods.overlaps(goal, start, end)

    def test_goal_without_bounds_always_overlaps(self):
        goal = make_goal(Track.monthly, 100, None, None)
        start, end = periods.month_window(datetime(2030, 1, 1))
        assert periods.overlaps(goal, start, end)

    def test_is_current_uses_goal_track(self):
        goal = make_goal(Track.monthly, 100, datetime(2024, 6, 1), end_of_day(2024, 6, 30))
        assert periods.is_current(goal, datetime(2024, 6, 20))
        assert not periods.is_current(goal, datetime(2024, 7, 1))
        assert not periods.is_current(None, datetime(2024, 7, 1))

    def test_starts_in_month(self):
        goal = make_goal(Track.monthly, 100, datetime(2024, 5, 1), end_of_day(2024, 5, 31))
        assert periods.starts_in_month(goal, 2024, 5)
        assert not periods.starts_in_month(goal, 2024, 6)
        assert not periods.starts_in_month(make_goal(Track.monthly, 1, None, None), 2024, 5)
