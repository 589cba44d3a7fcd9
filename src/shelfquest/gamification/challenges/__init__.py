"""Reading challenges module.

Provides functionality for:
- Creating time-boxed challenges and sharing them with other users
- Optional book conditions (genre, author, format, rating, publication year)
- Per-participant progress, each book counted at most once per challenge
- Reward XP paid once to each participant who reaches the target
"""

from .conditions import book_qualifies, check_conditions
from .manager import ChallengeManager
from .models import Challenge, ChallengeBook, ChallengeMember, ChallengeProgress
from .schemas import (
    ChallengeApplyResult,
    ChallengeConditions,
    ChallengeCreate,
    ChallengeOutcome,
    ChallengeResponse,
    ChallengeUpdate,
    OutcomeStatus,
    ParticipantProgress,
)

__all__ = [
    "ChallengeManager",
    "Challenge",
    "ChallengeBook",
    "ChallengeMember",
    "ChallengeProgress",
    "ChallengeApplyResult",
    "ChallengeConditions",
    "ChallengeCreate",
    "ChallengeOutcome",
    "ChallengeResponse",
    "ChallengeUpdate",
    "OutcomeStatus",
    "ParticipantProgress",
    "check_conditions",
    "book_qualifies",
]
