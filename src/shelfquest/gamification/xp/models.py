"""SQLAlchemy models for XP and levels.

Tables:
- xp_accounts: One XP/level row per user
- xp_ledger: Audit trail of every XP grant
"""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso
from .levels import LevelState


class XPAccount(Base):
    """XP account model - total XP and the level derived from it."""

    __tablename__ = "xp_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True, index=True)

    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    xp_to_next_level: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    # Optimistic lock counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso, onupdate=utcnow_iso)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<XPAccount(user_id={self.user_id}, total_xp={self.total_xp}, "
            f"level={self.current_level})>"
        )

    def level_state(self) -> LevelState:
        """Current values as a LevelState."""
        return LevelState(
            total_xp=self.total_xp,
            current_level=self.current_level,
            xp_to_next_level=self.xp_to_next_level,
        )

    def replace_state(self, state: LevelState) -> None:
        """Overwrite all level fields at once."""
        self.total_xp = state.total_xp
        self.current_level = state.current_level
        self.xp_to_next_level = state.xp_to_next_level


class XPLedgerEntry(Base):
    """XP ledger model - one row per applied grant."""

    __tablename__ = "xp_ledger"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)

    # Grants carrying a key are applied at most once
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(200), unique=True)

    created_at: Mapped[str] = mapped_column(String(26), default=utcnow_iso)

    def __repr__(self) -> str:
        return f"<XPLedgerEntry(user_id={self.user_id}, amount={self.amount}, reason='{self.reason}')>"
