"""Pydantic schemas for achievements."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..xp.schemas import XPGrantResult


class AchievementResponse(BaseModel):
    """Schema for achievement responses."""

    id: str
    user_id: str
    badge_type: str
    badge_name: str
    badge_emoji: str
    badge_description: Optional[str] = None
    earned_at: datetime

    model_config = {"from_attributes": True}


class AwardResult(BaseModel):
    """Result of an award attempt."""

    achievement: AchievementResponse
    already_earned: bool
    xp_grant: Optional[XPGrantResult] = None  # Only set for a fresh award
