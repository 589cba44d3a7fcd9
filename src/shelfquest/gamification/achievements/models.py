"""SQLAlchemy models for achievements.

Tables:
- achievements: Badges earned by users, one row per (user, badge type)
"""

from typing import Optional

from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso


class Achievement(Base):
    """Achievement model - an earned badge. Never updated once written."""

    __tablename__ = "achievements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    badge_type: Mapped[str] = mapped_column(String(50), nullable=False)
    badge_name: Mapped[str] = mapped_column(String(100), nullable=False)
    badge_emoji: Mapped[str] = mapped_column(String(10), nullable=False)
    badge_description: Mapped[Optional[str]] = mapped_column(Text)
    earned_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso, index=True)

    # Unique constraint: a badge can only be earned once per user
    __table_args__ = (
        UniqueConstraint("user_id", "badge_type", name="uq_achievement_user_badge"),
    )

    def __repr__(self) -> str:
        return f"<Achievement(user_id={self.user_id}, badge_type='{self.badge_type}')>"
