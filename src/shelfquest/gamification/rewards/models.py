"""SQLAlchemy models for virtual rewards.

Tables:
- virtual_rewards: Rewards unlocked by users
"""

from typing import Optional

from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso


class VirtualReward(Base):
    """Virtual reward model - an unlocked catalog entry."""

    __tablename__ = "virtual_rewards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    reward_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reward_name: Mapped[str] = mapped_column(String(100), nullable=False)
    reward_value: Mapped[str] = mapped_column(String(50), nullable=False)  # Threshold that triggered it
    emoji: Mapped[Optional[str]] = mapped_column(String(10))
    description: Mapped[Optional[str]] = mapped_column(Text)
    unlocked_at: Mapped[Optional[str]] = mapped_column(String(26), default=utcnow_iso)

    __table_args__ = (
        UniqueConstraint("user_id", "reward_type", "reward_name", name="uq_reward_user_type_name"),
    )

    def __repr__(self) -> str:
        return f"<VirtualReward(user_id={self.user_id}, {self.reward_type}='{self.reward_name}')>"
