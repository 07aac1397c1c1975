"""Achievement detection, celebration de-duplication and day rollover."""

import logging
from datetime import datetime
from typing import Optional

from posgoals.notify.notifier import Notification, Notifier
from posgoals.pos.models import Track
from posgoals.storage.cache import GoalCache, celebration_key
from . import periods
from .models import GoalCelebration, GoalProgress

logger = logging.getLogger(__name__)

MESSAGES = {
    Track.daily: (
        "🎉 Daily Goal Achieved!",
        "Congratulations! You've reached your daily sales target of {target}. Current sales: {current}",
    ),
    Track.monthly: (
        "🏆 Monthly Goal Achieved!",
        "Outstanding! You've reached your monthly sales target of {target}. Current sales: {current}",
    ),
}


class AchievementEvaluator:
    """Fires at most one celebration per track per period.

    The marker stored in the local cache is the only record of whether a
    period was already celebrated, so restarts never celebrate twice.
    """

    def __init__(self, cache: GoalCache, notifier: Notifier, currency_symbol: str = "₺"):
        self.cache = cache
        self.notifier = notifier
        self.currency_symbol = currency_symbol

    def is_new_day(self, store_scope: str, now: datetime) -> bool:
        """
        Detect a calendar-day change since the last daily celebration.

        Removes the stale marker when a change is detected. Returns False
        when no daily celebration has been recorded.
        """
        key = celebration_key(Track.daily, store_scope)
        last = self.cache.get(key)
        if last is None or last == periods.daily_period_key(now):
            return False

        logger.info(f"New day detected (last daily celebration {last}), resetting daily state")
        self.cache.remove(key)
        return True

    def already_celebrated(self, track: Track, store_scope: str, now: datetime) -> bool:
        marker = self.cache.get(celebration_key(track, store_scope))
        return marker == periods.period_key(track, now)

    async def evaluate(
        self, progress: Optional[GoalProgress], store_scope: str, now: datetime
    ) -> Optional[GoalCelebration]:
        """
        Record and announce a newly achieved goal.

        Args:
            progress: Current progress for one track, or None
            store_scope: Store identifier
            now: Evaluation instant (naive local time)

        Returns:
            The new GoalCelebration, or None if nothing to celebrate
        """
        if progress is None or not progress.achieved:
            return None

        track = progress.track
        if self.already_celebrated(track, store_scope, now):
            logger.debug(f"{track.value} goal already celebrated this period")
            return None

        self.cache.set(celebration_key(track, store_scope), periods.period_key(track, now))
        goal = progress.goal
        celebration = GoalCelebration(
            track=track,
            goal_name=goal.goal_name,
            target_amount=goal.target_amount,
            actual_amount=progress.current_amount,
            achieved_at=now,
        )
        logger.info(f"✓ {track.value} goal achieved: {progress.current_amount:,.2f}/{goal.target_amount:,.2f}")

        await self._announce(celebration)
        return celebration

    async def _announce(self, celebration: GoalCelebration):
        title, template = MESSAGES[celebration.track]
        notification = Notification(
            title=title,
            body=template.format(
                target=self._money(celebration.target_amount),
                current=self._money(celebration.actual_amount),
            ),
            sound=True,
            tag=f"{celebration.track.value}-goal-achievement",
        )
        try:
            await self.notifier.notify(notification)
        except Exception as e:
            # Marker stays set; the achievement is recorded either way
            logger.warning(f"Failed to deliver {celebration.track.value} goal notification: {e}")

    def _money(self, amount: float) -> str:
        return f"{self.currency_symbol}{amount:,.2f}"
