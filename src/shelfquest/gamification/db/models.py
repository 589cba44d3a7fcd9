"""Shared SQLAlchemy declarative base.

Each component declares its own tables against this base:
- xp: xp_accounts, xp_ledger
- streaks: streak_records
- achievements: achievements
- rewards: virtual_rewards
- challenges: challenges, challenge_members, challenge_progress, challenge_books
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utcnow_iso() -> str:
    """Current UTC time as an ISO string, the timestamp format used by all tables."""
    return datetime.now(timezone.utc).isoformat()
