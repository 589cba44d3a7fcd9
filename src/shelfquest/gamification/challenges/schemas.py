"""Pydantic schemas for reading challenges."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..xp.schemas import XPGrantResult


class ChallengeConditions(BaseModel):
    """Optional conditions a book must satisfy to count toward a challenge.

    Every present condition must hold. Genre, author and format are any-of
    matches, compared case-insensitively.
    """

    genres: Optional[list[str]] = None
    min_rating: Optional[float] = Field(None, ge=0, le=5)
    authors: Optional[list[str]] = None
    formats: Optional[list[str]] = None
    year_min: Optional[int] = None
    year_max: Optional[int] = None

    @field_validator("genres", "authors", "formats")
    @classmethod
    def empty_as_absent(cls, v):
        """Drop blank entries; an empty list imposes no constraint."""
        if v is None:
            return None
        cleaned = [item.strip() for item in v if item and item.strip()]
        return cleaned or None

    @model_validator(mode="after")
    def year_bounds_ordered(self):
        """Validate year_min does not exceed year_max."""
        if self.year_min is not None and self.year_max is not None and self.year_min > self.year_max:
            raise ValueError("year_min must not be greater than year_max")
        return self

    @property
    def is_empty(self) -> bool:
        """Check if no condition is present."""
        return not self.model_dump(exclude_none=True)


class ChallengeBase(BaseModel):
    """Base challenge fields."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    target_count: int = Field(..., ge=1, description="Books each participant must finish")
    start_date: date
    end_date: date
    reward_xp: int = Field(0, ge=0)

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v, info):
        """Validate end date is not before start date."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("end_date must not be before start_date")
        return v


class ChallengeCreate(ChallengeBase):
    """Schema for creating a challenge."""

    shared_with: list[str] = Field(default_factory=list)
    conditions: Optional[ChallengeConditions] = None


class ChallengeUpdate(BaseModel):
    """Schema for updating a challenge."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    target_count: Optional[int] = Field(None, ge=1)
    end_date: Optional[date] = None
    reward_xp: Optional[int] = Field(None, ge=0)
    conditions: Optional[ChallengeConditions] = None


class ParticipantProgress(BaseModel):
    """One participant's progress toward a challenge."""

    user_id: str
    completed_book_count: int
    target_count: int
    completed: bool
    completed_at: Optional[datetime] = None

    @property
    def percent(self) -> float:
        """Progress percentage, capped at 100."""
        return min(100.0, (self.completed_book_count / self.target_count) * 100)

    @property
    def remaining(self) -> int:
        """Books still needed."""
        return max(0, self.target_count - self.completed_book_count)


class ChallengeResponse(ChallengeBase):
    """Schema for challenge responses, with every participant's progress."""

    id: str
    owner_id: str
    shared_with: list[str]
    conditions: Optional[ChallengeConditions] = None
    participants: list[ParticipantProgress]
    is_completed: bool  # The owner's own progress is complete
    is_active: bool  # Today is within the challenge period
    is_closed: bool  # The challenge period is over
    created_at: datetime
    updated_at: datetime

    def progress_for(self, user_id: str) -> Optional[ParticipantProgress]:
        """Progress entry for a participant."""
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None


class OutcomeStatus(str, Enum):
    """What happened when a book was applied to one challenge."""

    COUNTED = "counted"
    CONDITION_NOT_MET = "condition_not_met"
    DUPLICATE = "duplicate"
    INACTIVE = "inactive"  # Outside the challenge period
    NOT_PARTICIPANT = "not_participant"
    ALREADY_COMPLETED = "already_completed"


class ChallengeOutcome(BaseModel):
    """Per-challenge result of applying a finished book."""

    challenge_id: str
    challenge_name: str
    status: OutcomeStatus
    completed_book_count: int = 0
    target_count: int
    newly_completed: bool = False
    unmet_conditions: list[str] = Field(default_factory=list)
    xp_grant: Optional[XPGrantResult] = None

    @property
    def condition_not_met(self) -> bool:
        return self.status == OutcomeStatus.CONDITION_NOT_MET


class ChallengeApplyResult(BaseModel):
    """Result of applying a finished book to a user's challenges."""

    outcomes: list[ChallengeOutcome] = Field(default_factory=list)
    xp_grants: list[XPGrantResult] = Field(default_factory=list)

    @property
    def xp_awarded(self) -> int:
        """Total reward XP granted by this application."""
        return sum(g.amount for g in self.xp_grants)

    @property
    def newly_completed(self) -> list[ChallengeOutcome]:
        """Outcomes that completed a challenge for the user."""
        return [o for o in self.outcomes if o.newly_completed]
