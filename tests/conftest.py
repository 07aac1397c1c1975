"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import pytest

from posgoals.goals.engine import GoalEngine
from posgoals.goals.errors import NotificationDeliveryFailure, ServerError
from posgoals.notify.notifier import Notification
from posgoals.pos.models import SalesGoal, SalesTotals, Track
from posgoals.storage.cache import GoalCache


STORE = "S1"


# ---------------------------------------------------------------------------
# Fake collaborators (no real POS API needed)
# ---------------------------------------------------------------------------

class FakeGoalStore:
    """In-memory stand-in for the POS API goal endpoints."""

    def __init__(self, goals: list[SalesGoal] | None = None):
        self.goals = list(goals or [])
        self.created: list[SalesGoal] = []
        self.list_calls = 0
        self.list_error: Exception | None = None
        self.create_error: Exception | None = None

    async def list_goals(self, store_scope: str, active_only: bool = True) -> list[SalesGoal]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return [
            g for g in self.goals
            if g.store_id == store_scope and (g.is_active or not active_only)
        ]

    async def create_goal(self, track, target_amount, period_start, period_end, store_scope):
        if self.create_error is not None:
            raise self.create_error
        goal = SalesGoal(
            id=f"created-{len(self.created) + 1}",
            goal_type=track,
            target_amount=target_amount,
            period_start=period_start,
            period_end=period_end,
            store_id=store_scope,
        )
        self.goals.append(goal)
        self.created.append(goal)
        return goal


class FakeMetrics:
    """Sales totals keyed by window name."""

    def __init__(self, today: float = 0.0, this_month: float = 0.0):
        self.totals = {"today": today, "this_month": this_month}
        self.calls: list[tuple[str, str]] = []
        self.failing: set[str] = set()
        self.error: Exception | None = None

    async def get_totals(self, store_scope: str, window: str) -> SalesTotals:
        self.calls.append((store_scope, window))
        if self.error is not None:
            raise self.error
        if window in self.failing:
            raise ServerError(f"{window} totals unavailable", status_code=502)
        return SalesTotals(totalSales=self.totals[window])


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.sent: list[Notification] = []
        self.fail = fail

    async def notify(self, notification: Notification) -> None:
        self.sent.append(notification)
        if self.fail:
            raise NotificationDeliveryFailure("no subscribers")


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_goal(
    track: Track,
    target: float,
    start: Optional[datetime],
    end: Optional[datetime],
    goal_id: str = "g1",
    store_id: str = STORE,
    is_active: bool = True,
    goal_name: Optional[str] = None,
) -> SalesGoal:
    """Helper to build a SalesGoal record."""
    return SalesGoal(
        id=goal_id,
        goal_type=track,
        target_amount=target,
        period_start=start,
        period_end=end,
        store_id=store_id,
        is_active=is_active,
        goal_name=goal_name,
    )


def end_of_day(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, 23, 59, 59, 999000)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def cache(tmp_path):
    return GoalCache(str(tmp_path / "cache" / "goals.db"))


@pytest.fixture()
def store():
    return FakeGoalStore()


@pytest.fixture()
def metrics():
    return FakeMetrics()


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def clock():
    return FakeClock(datetime(2024, 6, 15, 14, 30))


@pytest.fixture()
def make_engine(store, metrics, cache, notifier, clock):
    """Factory building engines that share the fixture collaborators."""
    def _make(store_scope: Optional[str] = STORE, **overrides) -> GoalEngine:
        kwargs = dict(
            store_scope=store_scope,
            store=store,
            metrics=metrics,
            cache=cache,
            notifier=notifier,
            poll_interval=1800,
            clock=clock,
        )
        kwargs.update(overrides)
        return GoalEngine(**kwargs)

    return _make


@pytest.fixture()
def engine(make_engine):
    return make_engine()

