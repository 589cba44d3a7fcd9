"""Pydantic schemas for virtual rewards."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..library.schemas import LibrarySnapshot
from .catalog import RewardType


class StatsSnapshot(BaseModel):
    """Aggregate stats that reward thresholds are checked against."""

    total_books: int = Field(0, ge=0)
    finished_books: int = Field(0, ge=0)
    current_level: int = Field(1, ge=1)
    current_streak: int = Field(0, ge=0)
    books_this_month: int = Field(0, ge=0)
    completed_challenges: int = Field(0, ge=0)

    @classmethod
    def from_library(
        cls,
        library: LibrarySnapshot,
        current_level: int,
        current_streak: int,
        completed_challenges: int,
        today: Optional[date] = None,
    ) -> "StatsSnapshot":
        """Compute a snapshot from a library and the other modules' output."""
        if today is None:
            today = date.today()
        return cls(
            total_books=library.total_books,
            finished_books=len(library.finished_books()),
            current_level=current_level,
            current_streak=current_streak,
            books_this_month=library.books_finished_in_month(today.year, today.month),
            completed_challenges=completed_challenges,
        )


class RewardResponse(BaseModel):
    """Schema for virtual reward responses."""

    reward_type: RewardType
    reward_name: str
    reward_value: str
    emoji: Optional[str] = None
    description: Optional[str] = None
    unlocked_at: Optional[datetime] = None  # None means locked

    model_config = {"from_attributes": True}

    @property
    def is_unlocked(self) -> bool:
        return self.unlocked_at is not None
