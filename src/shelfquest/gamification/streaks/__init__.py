"""Reading streaks module.

Provides functionality for:
- Tracking consecutive reading days per user
- Forgiving one missed day with a streak freeze
- Reporting whether a streak is active, at risk or broken
"""

from .manager import StreakManager, advance_streak, streak_status
from .models import StreakRecord
from .schemas import StreakResponse, StreakState, StreakStatus, StreakUpdateResult

__all__ = [
    "StreakManager",
    "StreakRecord",
    "StreakResponse",
    "StreakState",
    "StreakStatus",
    "StreakUpdateResult",
    "advance_streak",
    "streak_status",
]
