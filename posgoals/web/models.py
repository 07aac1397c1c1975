"""HTTP API models for the goal dashboard."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from posgoals.goals.models import GoalCelebration, GoalProgress
from posgoals.pos.models import SalesGoal, Track


class ProgressResponse(BaseModel):
    """Progress of one goal."""

    goal: SalesGoal
    current_amount: float
    percentage: float
    achieved: bool
    time_remaining: int

    @classmethod
    def from_progress(cls, progress: Optional[GoalProgress]) -> Optional["ProgressResponse"]:
        if progress is None:
            return None
        return cls(
            goal=progress.goal,
            current_amount=progress.current_amount,
            percentage=round(progress.percentage, 2),
            achieved=progress.achieved,
            time_remaining=progress.time_remaining,
        )


class CelebrationResponse(BaseModel):
    """Pending achievement celebration."""

    track: Track
    goal_name: Optional[str] = None
    target_amount: float
    actual_amount: float
    achieved_at: datetime

    @classmethod
    def from_celebration(cls, celebration: Optional[GoalCelebration]) -> Optional["CelebrationResponse"]:
        if celebration is None:
            return None
        return cls(
            track=celebration.track,
            goal_name=celebration.goal_name,
            target_amount=celebration.target_amount,
            actual_amount=celebration.actual_amount,
            achieved_at=celebration.achieved_at,
        )


class GoalStateResponse(BaseModel):
    """Response for /api/goals endpoint."""

    store_id: Optional[str] = None
    daily_goal: Optional[SalesGoal] = None
    monthly_goal: Optional[SalesGoal] = None
    daily_progress: Optional[ProgressResponse] = None
    monthly_progress: Optional[ProgressResponse] = None
    last_celebration: Optional[CelebrationResponse] = None
    from_cache: bool = False
    loading: bool = False
    error: Optional[str] = None


class GoalRequest(BaseModel):
    """Explicit goal creation for the current day or month."""

    goal_type: Track
    target_amount: float = Field(ge=0)
