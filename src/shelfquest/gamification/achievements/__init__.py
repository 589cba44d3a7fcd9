"""Achievements module.

Provides functionality for:
- Awarding named one-time badges idempotently
- Paying out each badge's catalog XP exactly once
- Evaluating badge triggers after a finished book
"""

from .catalog import BADGES, BadgeDefinition, get_badge
from .manager import AchievementManager
from .models import Achievement
from .schemas import AchievementResponse, AwardResult

__all__ = [
    "AchievementManager",
    "Achievement",
    "AchievementResponse",
    "AwardResult",
    "BADGES",
    "BadgeDefinition",
    "get_badge",
]
