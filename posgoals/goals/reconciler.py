"""Goal reconciliation against the POS API with local cache fallback."""

import logging
import math
from datetime import datetime
from typing import Optional, Protocol

from pydantic import ValidationError

from posgoals.pos.models import SalesGoal, Track
from posgoals.storage.cache import GoalCache, goal_key
from . import periods
from .errors import MalformedCacheEntry, RemoteUnavailable
from .models import ResolvedGoals

logger = logging.getLogger(__name__)


class GoalStore(Protocol):
    async def list_goals(self, store_scope: str, active_only: bool = True) -> list[SalesGoal]: ...

    async def create_goal(
        self,
        track: Track,
        target_amount: float,
        period_start: datetime,
        period_end: datetime,
        store_scope: str,
    ) -> SalesGoal: ...


class GoalReconciler:
    """Resolves the current daily and monthly goal for a store."""

    def __init__(self, store: GoalStore, cache: GoalCache):
        """Initialize with goal store and local cache."""
        self.store = store
        self.cache = cache

    async def reconcile(self, store_scope: str, now: datetime) -> ResolvedGoals:
        """
        Resolve the current goals for ``store_scope``.

        Reads active goals from the store, falling back to the local cache
        only when the store call fails. A missing monthly goal is carried
        over from last month on the first day of the month, and a missing
        daily goal is derived from the monthly one. Whatever resolves is
        written back to the cache.

        Args:
            store_scope: Store identifier
            now: Evaluation instant (naive local time)

        Returns:
            ResolvedGoals with daily/monthly set or None
        """
        logger.info(f"Reconciling goals for store {store_scope}...")

        from_cache = False
        try:
            candidates = await self.store.list_goals(store_scope, active_only=True)
            logger.info(f"✓ Loaded {len(candidates)} goals from POS API")
        except RemoteUnavailable as e:
            logger.warning(f"Failed to fetch goals from POS API, using local cache: {e}")
            candidates = self._read_cached(store_scope)
            from_cache = True

        candidates = [g for g in candidates if g.is_active]
        for goal in candidates:
            logger.debug(
                f"  Candidate {goal.goal_type.value} {goal.id}: {goal.target_amount} "
                f"({goal.period_start} -> {goal.period_end})"
            )

        daily = self._select(candidates, Track.daily, now)
        monthly = self._select(candidates, Track.monthly, now)

        if daily is None:
            logger.info("No daily goal found - one can be set manually")

        if monthly is None:
            monthly = await self._carry_over_monthly(candidates, store_scope, now)
            if monthly is None:
                logger.info("No monthly goal found - one can be set manually")

        if daily is None and monthly is not None:
            daily = await self._derive_daily(monthly, store_scope, now)

        for track, goal in ((Track.daily, daily), (Track.monthly, monthly)):
            if goal is not None:
                self.cache.set(goal_key(track, store_scope), goal.model_dump_json(by_alias=True))
                logger.debug(f"Saved {track.value} goal to local cache")

        return ResolvedGoals(daily=daily, monthly=monthly, from_cache=from_cache)

    def _select(self, candidates: list[SalesGoal], track: Track, now: datetime) -> Optional[SalesGoal]:
        """Pick the first goal of ``track`` overlapping the current window."""
        start, end = periods.window_for(track, now)
        for goal in candidates:
            if goal.goal_type == track and periods.overlaps(goal, start, end):
                logger.info(f"Using existing {track.value} goal {goal.id} ({goal.target_amount:,.2f})")
                return goal
        return None

    def _read_cached(self, store_scope: str) -> list[SalesGoal]:
        """Read cached daily/monthly goals, skipping malformed entries."""
        goals = []
        for track in Track:
            raw = self.cache.get(goal_key(track, store_scope))
            if raw is None:
                continue
            try:
                goals.append(self._parse_cached(raw, track))
            except MalformedCacheEntry as e:
                logger.warning(f"Ignoring cached {track.value} goal: {e}")
        logger.info(f"📦 Loaded {len(goals)} goals from local cache")
        return goals

    def _parse_cached(self, raw: str, track: Track) -> SalesGoal:
        try:
            return SalesGoal.model_validate_json(raw)
        except ValidationError as e:
            raise MalformedCacheEntry(f"invalid {track.value} entry: {e.error_count()} errors") from e

    async def _carry_over_monthly(
        self, candidates: list[SalesGoal], store_scope: str, now: datetime
    ) -> Optional[SalesGoal]:
        """On the first of the month, copy last month's target into a new goal."""
        if now.day != 1:
            return None

        year, month = periods.previous_month(now)
        last_month = next(
            (
                g for g in candidates
                if g.goal_type == Track.monthly and periods.starts_in_month(g, year, month)
            ),
            None,
        )
        if last_month is None:
            return None

        start, end = periods.month_window(now)
        try:
            created = await self.store.create_goal(
                Track.monthly, last_month.target_amount, start, end, store_scope
            )
        except Exception as e:
            logger.warning(f"Failed to carry over monthly goal: {e}")
            return None

        logger.info(f"Carried over monthly goal from {year}-{month:02d}: {created.target_amount:,.2f}")
        return created

    async def _derive_daily(
        self, monthly: SalesGoal, store_scope: str, now: datetime
    ) -> Optional[SalesGoal]:
        """Create today's goal as the monthly target spread over the remaining days."""
        days_left = periods.days_remaining_in_month(now)
        suggested = math.ceil(monthly.target_amount / days_left)
        start, end = periods.day_window(now)
        try:
            created = await self.store.create_goal(Track.daily, suggested, start, end, store_scope)
        except Exception as e:
            logger.warning(f"Failed to derive daily goal from monthly: {e}")
            return None

        logger.info(f"Derived daily goal {suggested:,} from monthly target over {days_left} days")
        return created
