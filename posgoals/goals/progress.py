"""Sales totals querying and progress calculation."""

import logging
from datetime import datetime
from typing import Optional, Protocol

from posgoals.pos.models import SalesGoal, SalesTotals, Track
from . import periods
from .errors import RemoteUnavailable
from .models import GoalProgress

logger = logging.getLogger(__name__)

MAX_PERCENTAGE = 999.0

WINDOW_BY_TRACK = {
    Track.daily: "today",
    Track.monthly: "this_month",
}


class SalesMetricsSource(Protocol):
    async def get_totals(self, store_scope: str, window: str) -> SalesTotals: ...


def build_progress(goal: SalesGoal, current_amount: float, now: datetime) -> GoalProgress:
    """
    Pair a goal with a sales amount.

    A zero target never counts as achieved and always reports 0%.
    """
    target = goal.target_amount or 0.0
    if target > 0:
        percentage = min(max(current_amount / target * 100.0, 0.0), MAX_PERCENTAGE)
        achieved = current_amount >= target
    else:
        percentage = 0.0
        achieved = False

    if goal.goal_type == Track.daily:
        time_remaining = periods.hours_remaining_in_day(now)
    else:
        time_remaining = periods.days_remaining_after_today(now)

    return GoalProgress(
        goal=goal,
        current_amount=current_amount,
        percentage=percentage,
        achieved=achieved,
        time_remaining=time_remaining,
    )


class ProgressCalculator:
    """Calculates goal progress from POS sales analytics."""

    def __init__(self, metrics: SalesMetricsSource):
        """Initialize with sales metrics source."""
        self.metrics = metrics

    async def calculate_progress(
        self, goal: Optional[SalesGoal], store_scope: str, now: datetime
    ) -> Optional[GoalProgress]:
        """
        Calculate progress for one goal.

        Always queries the metrics source for the goal's own window
        ("today" or "this_month") rather than reusing other totals.

        Args:
            goal: Resolved goal, or None
            store_scope: Store identifier
            now: Evaluation instant (naive local time)

        Returns:
            GoalProgress, or None when there is no goal

        Raises:
            RemoteUnavailable: If the metrics query fails
        """
        if goal is None:
            return None

        window = WINDOW_BY_TRACK[goal.goal_type]
        totals = await self.metrics.get_totals(store_scope, window)
        progress = build_progress(goal, totals.total_sales, now)

        logger.info(
            f"  {goal.goal_type.value}: {progress.current_amount:,.2f}/{goal.target_amount:,.2f} "
            f"({progress.percentage:.1f}%, achieved: {progress.achieved})"
        )
        return progress

    async def calculate_all(
        self,
        daily: Optional[SalesGoal],
        monthly: Optional[SalesGoal],
        store_scope: str,
        now: datetime,
        previous: tuple[Optional[GoalProgress], Optional[GoalProgress]] = (None, None),
    ) -> tuple[Optional[GoalProgress], Optional[GoalProgress]]:
        """
        Calculate daily and monthly progress with two separate queries.

        A track whose query fails keeps its previous progress.
        """
        logger.info(f"Calculating goal progress for store {store_scope}...")

        results = []
        for goal, last in zip((daily, monthly), previous):
            try:
                results.append(await self.calculate_progress(goal, store_scope, now))
            except RemoteUnavailable as e:
                logger.warning(f"Failed to fetch {goal.goal_type.value} sales totals, keeping last progress: {e}")
                results.append(last if last is not None and last.goal == goal else None)
            except Exception as e:
                logger.error(f"Failed to calculate {goal.goal_type.value} progress, keeping last progress: {e}")
                results.append(last if last is not None and last.goal == goal else None)
        return results[0], results[1]
