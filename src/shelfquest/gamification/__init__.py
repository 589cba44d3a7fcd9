"""Gamification engine for reading activity.

Turns "book finished" events into XP and levels, reading streaks, one-time
achievements, unlockable virtual rewards and progress on shared reading
challenges.
"""

from .. import __version__
from .engine import GamificationEngine, OrchestrationResult, StepWarning
from .errors import (
    ConflictError,
    GamificationError,
    NotFoundError,
    TransientPersistenceError,
    ValidationError,
)
from .library import LibraryBook, LibrarySnapshot

__all__ = [
    "__version__",
    "GamificationEngine",
    "OrchestrationResult",
    "StepWarning",
    "GamificationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "TransientPersistenceError",
    "LibraryBook",
    "LibrarySnapshot",
]
