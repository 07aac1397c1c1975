"""POS API models for sales goals and analytics."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Track(str, Enum):
    """Goal cadence."""

    daily = "daily"
    monthly = "monthly"


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware timestamp to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class SalesGoal(BaseModel):
    """Sales goal record as stored by the POS API."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    goal_type: Track
    target_amount: float = Field(ge=0)
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    store_id: Optional[str] = None
    is_active: bool = True
    goal_name: Optional[str] = None
    currency: Optional[str] = None

    @field_validator("period_start", "period_end")
    @classmethod
    def _normalize_period(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return to_local_naive(value)


class GoalCreate(BaseModel):
    """Payload for POST /goals."""

    goal_type: Track
    target_amount: float = Field(ge=0)
    period_start: datetime
    period_end: datetime
    store_id: str
    is_active: bool = True
    currency: Optional[str] = None

    def to_payload(self) -> dict:
        """Serialize with period bounds as local-offset ISO timestamps."""
        payload = self.model_dump(mode="json", exclude={"period_start", "period_end"})
        payload["period_start"] = self.period_start.astimezone().isoformat()
        payload["period_end"] = self.period_end.astimezone().isoformat()
        return payload


class SalesTotals(BaseModel):
    """Subset of dashboard analytics used for goal progress."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    total_sales: float = Field(default=0.0, alias="totalSales")

    @field_validator("total_sales", mode="before")
    @classmethod
    def _default_missing(cls, value):
        return 0.0 if value is None else value
