"""Pydantic schemas for reading streaks."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class StreakStatus(str, Enum):
    """Status of a streak relative to today."""

    NONE = "none"  # No activity recorded yet
    ACTIVE = "active"  # Read today
    AT_RISK = "at_risk"  # Reading today (or tomorrow, with the freeze) keeps it alive
    BROKEN = "broken"  # The next activity starts over at 1


class StreakState(BaseModel):
    """Streak values, independent of storage."""

    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    last_activity_date: Optional[date] = None
    freeze_used: bool = False

    model_config = {"from_attributes": True}


class StreakResponse(StreakState):
    """Schema for streak responses."""

    user_id: str


class StreakUpdateResult(BaseModel):
    """Result of recording reading activity."""

    streak: StreakResponse
    streak_increased: bool
    changed: bool  # False when the activity fell on the last recorded day
    freeze_consumed: bool = False
