"""SQLAlchemy models for reading streaks.

Tables:
- streak_records: One streak row per user
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso


class StreakRecord(Base):
    """Streak record model - consecutive reading activity for a user."""

    __tablename__ = "streak_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True, index=True)

    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_date: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date
    freeze_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Optimistic lock counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso, onupdate=utcnow_iso)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<StreakRecord(user_id={self.user_id}, current={self.current_streak})>"
