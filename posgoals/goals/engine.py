"""Goal engine: owns goal state for one store and drives the goal cycle."""

import asyncio
import logging
from contextlib import suppress
from datetime import datetime
from typing import Awaitable, Callable, Optional

from posgoals.notify.notifier import LogNotifier, Notifier, WebhookNotifier
from posgoals.pos.client import PosApiClient
from posgoals.pos.models import SalesGoal, Track
from posgoals.storage.cache import GoalCache, goal_key
from . import periods
from .achievements import AchievementEvaluator
from .errors import NotAuthenticated
from .models import GoalCelebration, GoalProgress, ResolvedGoals
from .progress import ProgressCalculator, SalesMetricsSource, build_progress
from .reconciler import GoalReconciler, GoalStore

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load goals"


class GoalEngine:
    """
    Tracks the daily and monthly sales goal of a single store.

    One goal cycle is: day rollover check, reconciliation, progress
    calculation, achievement evaluation. Only one cycle runs at a time;
    triggers arriving while one is in flight are dropped.

    Goals set explicitly through ``set_daily_goal``/``set_monthly_goal``
    are pinned and take precedence over reconciliation for as long as
    their period covers the current time.
    """

    def __init__(
        self,
        store_scope: Optional[str],
        store: GoalStore,
        metrics: SalesMetricsSource,
        cache: GoalCache,
        notifier: Notifier,
        poll_interval: float = 1800,
        currency_symbol: str = "₺",
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize goal engine.

        Args:
            store_scope: Store identifier; None means no active session
            store: Remote goal store
            metrics: Sales totals source
            cache: Local fallback cache
            notifier: Achievement announcement sink
            poll_interval: Seconds between timer-driven cycles
            currency_symbol: Prefix for amounts in announcements
            clock: Returns the current naive local time
        """
        self.store_scope = store_scope
        self.cache = cache
        self.reconciler = GoalReconciler(store, cache)
        self.calculator = ProgressCalculator(metrics)
        self.achievements = AchievementEvaluator(cache, notifier, currency_symbol)
        self.poll_interval = poll_interval
        self.clock = clock

        self._daily_goal: Optional[SalesGoal] = None
        self._monthly_goal: Optional[SalesGoal] = None
        self._daily_progress: Optional[GoalProgress] = None
        self._monthly_progress: Optional[GoalProgress] = None
        self._last_celebration: Optional[GoalCelebration] = None
        self._loading = False
        self._error: Optional[str] = None
        self._from_cache = False

        self._pinned: dict[Track, SalesGoal] = {}
        self._busy = False
        self._generation = 0
        self._closed = False
        self._timer: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings, client: PosApiClient) -> "GoalEngine":
        """Build an engine wired to the POS API client and configured cache/notifier."""
        if settings.notify_webhook_url:
            notifier = WebhookNotifier(settings.notify_webhook_url)
        else:
            notifier = LogNotifier()
        return cls(
            store_scope=settings.store_id,
            store=client,
            metrics=client,
            cache=GoalCache(settings.cache_db_path),
            notifier=notifier,
            poll_interval=settings.goal_poll_interval,
            currency_symbol=settings.currency_symbol,
        )

    # Read interface

    @property
    def daily_goal(self) -> Optional[SalesGoal]:
        return self._daily_goal

    @property
    def monthly_goal(self) -> Optional[SalesGoal]:
        return self._monthly_goal

    @property
    def daily_progress(self) -> Optional[GoalProgress]:
        return self._daily_progress

    @property
    def monthly_progress(self) -> Optional[GoalProgress]:
        return self._monthly_progress

    @property
    def last_celebration(self) -> Optional[GoalCelebration]:
        return self._last_celebration

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def from_cache(self) -> bool:
        """True when the last reconciliation fell back to the local cache."""
        return self._from_cache

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # Lifecycle

    def start(self) -> asyncio.Task:
        """Run a cycle now and then every ``poll_interval`` seconds."""
        if self._closed:
            raise RuntimeError("Goal engine has been torn down")
        if self._timer is None or self._timer.done():
            self._timer = asyncio.create_task(self._poll())
            logger.info(f"Goal engine started (every {self.poll_interval}s)")
        return self._timer

    async def teardown(self):
        """Stop the timer; in-flight cycles finish without touching state."""
        self._closed = True
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            with suppress(asyncio.CancelledError):
                await self._timer
            self._timer = None
        logger.info("Goal engine stopped")

    async def _poll(self):
        while True:
            # in-flight cycle survives cancellation; generation check drops its results
            try:
                await asyncio.shield(self.load_goals())
            except Exception as e:
                logger.error(f"Goal cycle failed, retrying in {self.poll_interval}s: {e}")
            await asyncio.sleep(self.poll_interval)

    # Commands

    def set_daily_goal(self, goal: SalesGoal):
        self._pin(Track.daily, goal)

    def set_monthly_goal(self, goal: SalesGoal):
        self._pin(Track.monthly, goal)

    def clear_last_celebration(self):
        self._last_celebration = None

    async def load_goals(self):
        """Run a full goal cycle."""
        await self._exclusive("load_goals", self._full_cycle)

    async def update_progress(self):
        """Refresh progress for the current goals and check achievements."""
        async def cycle(generation: int):
            await self._refresh_progress(generation)
            await self._evaluate(generation)

        await self._exclusive("update_progress", cycle)

    async def check_achievements(self):
        await self._exclusive("check_achievements", self._evaluate)

    def reset_daily_for_new_day(self):
        """Clear celebration and zero daily progress after a calendar-day change."""
        if not self.store_scope:
            return
        now = self.clock()
        if not self.achievements.is_new_day(self.store_scope, now):
            return
        self._last_celebration = None
        if self._daily_goal is not None:
            self._daily_progress = build_progress(self._daily_goal, 0.0, now)

    # Internals

    def _require_scope(self) -> str:
        if not self.store_scope:
            raise NotAuthenticated("No store scope for goal tracking")
        return self.store_scope

    def _is_live(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def _exclusive(self, name: str, operation: Callable[[int], Awaitable[None]]):
        if self._closed:
            logger.debug(f"Goal engine torn down, ignoring {name}")
            return
        try:
            self._require_scope()
        except NotAuthenticated:
            logger.info(f"No store scope, skipping {name}")
            return
        if self._busy:
            logger.info(f"Goal cycle already running, skipping {name}")
            return

        self._busy = True
        try:
            await operation(self._generation)
        finally:
            self._busy = False

    async def _full_cycle(self, generation: int):
        scope = self._require_scope()
        now = self.clock()

        self._loading = True
        try:
            resolved = await self.reconciler.reconcile(scope, now)
        except Exception as e:
            logger.error(f"{LOAD_ERROR}: {e}")
            if self._is_live(generation):
                self._error = LOAD_ERROR
            return
        finally:
            self._loading = False

        if not self._is_live(generation):
            logger.info("Goal engine torn down during reconciliation, discarding results")
            return

        self._apply_goals(resolved, scope, now)
        self._from_cache = resolved.from_cache
        if resolved.from_cache:
            logger.info("📦 Goals resolved from local cache")
        self._error = None

        await self._refresh_progress(generation)
        await self._evaluate(generation)

    def _apply_goals(self, resolved: ResolvedGoals, scope: str, now: datetime):
        goals = {Track.daily: resolved.daily, Track.monthly: resolved.monthly}
        for track in Track:
            pinned = self._pinned.get(track)
            if pinned is None:
                continue
            if periods.is_current(pinned, now):
                logger.debug(f"Keeping explicitly set {track.value} goal {pinned.id}")
                goals[track] = pinned
                self.cache.set(goal_key(track, scope), pinned.model_dump_json(by_alias=True))
            else:
                logger.info(f"Explicit {track.value} goal {pinned.id} expired, resuming reconciliation")
                del self._pinned[track]

        self._daily_goal = goals[Track.daily]
        self._monthly_goal = goals[Track.monthly]

        if self._daily_progress is not None and self._daily_progress.goal != self._daily_goal:
            self._daily_progress = None
        if self._monthly_progress is not None and self._monthly_progress.goal != self._monthly_goal:
            self._monthly_progress = None

    async def _refresh_progress(self, generation: int):
        scope = self._require_scope()
        self.reset_daily_for_new_day()

        now = self.clock()
        daily, monthly = await self.calculator.calculate_all(
            self._daily_goal,
            self._monthly_goal,
            scope,
            now,
            previous=(self._daily_progress, self._monthly_progress),
        )
        if not self._is_live(generation):
            return
        self._daily_progress = daily
        self._monthly_progress = monthly

    async def _evaluate(self, generation: int):
        scope = self._require_scope()
        now = self.clock()
        for progress in (self._daily_progress, self._monthly_progress):
            if not self._is_live(generation):
                return
            try:
                celebration = await self.achievements.evaluate(progress, scope, now)
            except Exception as e:
                logger.error(f"Failed to evaluate goal achievement: {e}")
                continue
            if celebration is not None:
                self._last_celebration = celebration

    def _pin(self, track: Track, goal: SalesGoal):
        if goal.goal_type != track:
            raise ValueError(f"Expected a {track.value} goal, got {goal.goal_type.value}")

        self._pinned[track] = goal
        if track == Track.daily:
            self._daily_goal = goal
        else:
            self._monthly_goal = goal

        if self.store_scope:
            self.cache.set(goal_key(track, self.store_scope), goal.model_dump_json(by_alias=True))
        logger.info(f"Set {track.value} goal {goal.id} ({goal.target_amount:,.2f})")


async def demo_goals():
    """Demo: Run one goal cycle and print the results."""
    from dotenv import load_dotenv

    from posgoals.config import Settings

    load_dotenv()
    settings = Settings()

    if not settings.store_id:
        print("Error: STORE_ID must be set in .env file")
        return

    client = PosApiClient(settings.pos_api_url, settings.pos_api_token, settings.request_timeout)
    engine = GoalEngine.from_settings(settings, client)

    try:
        await engine.load_goals()

        print("\n" + "=" * 60)
        print("SALES GOALS")
        print("=" * 60 + "\n")

        if engine.error:
            print(f"Error: {engine.error}")

        for label, progress, unit in (
            ("Daily", engine.daily_progress, "hours"),
            ("Monthly", engine.monthly_progress, "days"),
        ):
            if progress is None:
                print(f"{label}: no goal set")
                continue
            print(f"{label}: {progress.current_amount:,.2f}/{progress.goal.target_amount:,.2f}")
            print(f"  Progress: {progress.percentage:.1f}%")
            print(f"  Achieved: {progress.achieved}")
            print(f"  Remaining: {progress.time_remaining} {unit}")
            print()

        if engine.last_celebration:
            print(f"Celebration: {engine.last_celebration.track.value} goal achieved!")

    finally:
        await engine.teardown()
        await client.aclose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(demo_goals())
