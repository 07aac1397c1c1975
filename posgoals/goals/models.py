"""Data models for goal progress and celebrations."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from posgoals.pos.models import SalesGoal, Track


@dataclass
class GoalProgress:
    """A goal paired with its latest sales measurement."""
    goal: SalesGoal
    current_amount: float = 0.0
    percentage: float = 0.0
    achieved: bool = False
    time_remaining: int = 0  # hours for daily, days for monthly

    @property
    def track(self) -> Track:
        return self.goal.goal_type


@dataclass(frozen=True)
class GoalCelebration:
    """A single achievement event, held until the consumer clears it."""
    track: Track
    goal_name: Optional[str]
    target_amount: float
    actual_amount: float
    achieved_at: datetime


@dataclass
class ResolvedGoals:
    """Outcome of one reconciliation pass."""
    daily: Optional[SalesGoal] = None
    monthly: Optional[SalesGoal] = None
    from_cache: bool = False
