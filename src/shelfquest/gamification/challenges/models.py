"""SQLAlchemy models for reading challenges.

Tables:
- challenges: Challenge definitions
- challenge_members: Users a challenge is shared with (the owner is implicit)
- challenge_progress: Per-participant book counts
- challenge_books: Books counted toward a challenge, each at most once
"""

import json
from datetime import date
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, generate_uuid, utcnow_iso


class Challenge(Base):
    """Challenge model - a time-boxed, optionally shared reading goal."""

    __tablename__ = "challenges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    # Goal
    target_count: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Time period
    start_date: Mapped[str] = mapped_column(String(10), nullable=False)  # ISO date
    end_date: Mapped[str] = mapped_column(String(10), nullable=False)  # ISO date

    # Optional conditions (JSON) a book must satisfy to count
    conditions: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso, onupdate=utcnow_iso)

    # Relationships
    members: Mapped[list["ChallengeMember"]] = relationship(
        "ChallengeMember", back_populates="challenge", cascade="all, delete-orphan"
    )
    progress: Mapped[list["ChallengeProgress"]] = relationship(
        "ChallengeProgress", back_populates="challenge", cascade="all, delete-orphan"
    )
    challenge_books: Mapped[list["ChallengeBook"]] = relationship(
        "ChallengeBook", back_populates="challenge", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Challenge(id={self.id}, name='{self.name}', target={self.target_count})>"

    def get_conditions(self) -> Optional[dict]:
        """Get conditions as dict."""
        if self.conditions:
            return json.loads(self.conditions)
        return None

    def set_conditions(self, conditions: Optional[dict]) -> None:
        """Set conditions from dict."""
        self.conditions = json.dumps(conditions) if conditions else None

    @property
    def member_ids(self) -> list[str]:
        """Users the challenge is shared with, owner excluded."""
        return [m.user_id for m in self.members]

    @property
    def participant_ids(self) -> list[str]:
        """Owner followed by every member."""
        return [self.owner_id] + [uid for uid in self.member_ids if uid != self.owner_id]

    def is_participant(self, user_id: str) -> bool:
        """Check if a user is the owner or a member."""
        return user_id == self.owner_id or user_id in self.member_ids

    def in_window(self, today: date) -> bool:
        """Check if today falls within the challenge period, inclusive."""
        return self.start_date <= today.isoformat() <= self.end_date

    def is_closed(self, today: date) -> bool:
        """Check if the challenge period is over."""
        return today.isoformat() > self.end_date

    def progress_for(self, user_id: str) -> Optional["ChallengeProgress"]:
        """Progress row for a participant, if any."""
        for p in self.progress:
            if p.user_id == user_id:
                return p
        return None

    @property
    def is_completed(self) -> bool:
        """Check if the owner has completed their own progress."""
        owner_progress = self.progress_for(self.owner_id)
        return owner_progress is not None and owner_progress.completed_book_count >= self.target_count


class ChallengeMember(Base):
    """Association table for sharing a challenge with a user."""

    __tablename__ = "challenge_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    challenge_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("challenges.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    added_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso)

    challenge: Mapped["Challenge"] = relationship("Challenge", back_populates="members")

    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="uq_challenge_member"),
    )

    def __repr__(self) -> str:
        return f"<ChallengeMember(challenge_id={self.challenge_id}, user_id={self.user_id})>"


class ChallengeProgress(Base):
    """Per-participant progress toward a challenge."""

    __tablename__ = "challenge_progress"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    challenge_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("challenges.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    completed_book_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Set when the participant first reaches the target
    completed_at: Mapped[Optional[str]] = mapped_column(String(26))

    # Optimistic lock counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    updated_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso, onupdate=utcnow_iso)

    challenge: Mapped["Challenge"] = relationship("Challenge", back_populates="progress")

    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="uq_challenge_progress"),
    )
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<ChallengeProgress(challenge_id={self.challenge_id}, user_id={self.user_id}, "
            f"count={self.completed_book_count})>"
        )


class ChallengeBook(Base):
    """Association table for books counted toward a challenge."""

    __tablename__ = "challenge_books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    challenge_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("challenges.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # Participant the book was counted for
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)

    counted_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso)

    challenge: Mapped["Challenge"] = relationship("Challenge", back_populates="challenge_books")

    # Unique constraint: a book can only count once per challenge
    __table_args__ = (
        UniqueConstraint("challenge_id", "book_id", name="uq_challenge_book"),
    )

    def __repr__(self) -> str:
        return f"<ChallengeBook(challenge_id={self.challenge_id}, book_id={self.book_id})>"
