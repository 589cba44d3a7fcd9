"""Achievement manager for one-time badges."""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db, insert_if_absent, retry_on_conflict
from ..errors import GamificationError, ValidationError
from ..library.schemas import LibrarySnapshot
from ..xp.manager import XPManager
from .catalog import (
    BOOKWORM_COUNT,
    FIRST_BOOK,
    FIRST_BOOK_COUNT,
    MONTHLY_MASTER_STREAK,
    SPEED_READER,
    SPEED_READER_MONTHLY,
    STREAK_1,
    STREAK_4,
    TEN_BOOKS,
    WEEK_WARRIOR_STREAK,
    get_badge,
)
from .models import Achievement
from .schemas import AchievementResponse, AwardResult

logger = logging.getLogger(__name__)


class AchievementManager:
    """Manages one-time achievements and their XP payouts."""

    def __init__(self, db: Optional[Database] = None, xp_manager: Optional[XPManager] = None):
        """Initialize achievement manager.

        Args:
            db: Database instance
            xp_manager: XP manager used for badge payouts
        """
        self.db = db or get_db()
        self.xp = xp_manager or XPManager(self.db)

    def award_if_unearned(
        self,
        user_id: str,
        badge_type: str,
        name: Optional[str] = None,
        emoji: Optional[str] = None,
        description: Optional[str] = None,
    ) -> AwardResult:
        """Award a badge unless the user already has it.

        The insert and the catalog XP grant commit together. A repeat call
        writes nothing and grants nothing.

        Args:
            user_id: User ID
            badge_type: Badge key, unique per user
            name: Display name (default: catalog name)
            emoji: Display emoji (default: catalog emoji)
            description: Description (default: catalog description)

        Returns:
            AwardResult with already_earned set on repeats

        Raises:
            ValidationError: If the badge is unknown and no name/emoji is given
            ConflictError: If the XP account keeps changing underneath the award
        """
        if not user_id:
            raise ValidationError("User ID is required")

        badge = get_badge(badge_type)
        name = name or (badge.name if badge else None)
        emoji = emoji or (badge.emoji if badge else None)
        if description is None and badge:
            description = badge.description
        if not name or not emoji:
            raise ValidationError(f"Unknown badge type without name and emoji: {badge_type}")
        xp_reward = badge.xp_reward if badge else 0

        def _award() -> AwardResult:
            with self.db.get_session() as session:
                achievement = Achievement(
                    user_id=user_id,
                    badge_type=badge_type,
                    badge_name=name,
                    badge_emoji=emoji,
                    badge_description=description,
                )

                if not insert_if_absent(session, achievement):
                    existing = self._get(session, user_id, badge_type)
                    return AwardResult(
                        achievement=AchievementResponse.model_validate(existing),
                        already_earned=True,
                    )

                xp_grant = None
                if xp_reward > 0:
                    xp_grant = self.xp.grant_xp(
                        user_id,
                        xp_reward,
                        reason=f"Achievement: {name}",
                        idempotency_key=f"achievement:{user_id}:{badge_type}",
                        session=session,
                    )

                return AwardResult(
                    achievement=AchievementResponse.model_validate(achievement),
                    already_earned=False,
                    xp_grant=xp_grant,
                )

        result = retry_on_conflict(_award)
        if not result.already_earned:
            logger.info("User %s earned achievement %s", user_id, badge_type)
        return result

    def evaluate(
        self,
        user_id: str,
        library: LibrarySnapshot,
        current_streak: int,
        today: Optional[date] = None,
    ) -> list[AwardResult]:
        """Check every achievement trigger and award what is due.

        Safe to run after every event; repeats are no-ops. A badge that fails
        to award is logged and the remaining triggers still run.

        Args:
            user_id: User ID
            library: Current library snapshot
            current_streak: Current streak length
            today: Reference day for the monthly count (default: today)

        Returns:
            Only the awards made by this call
        """
        if today is None:
            today = date.today()

        finished = len(library.finished_books())
        this_month = library.books_finished_in_month(today.year, today.month)

        due = []
        if finished == FIRST_BOOK_COUNT:
            due.append(FIRST_BOOK)
        if finished == BOOKWORM_COUNT:
            due.append(TEN_BOOKS)
        if this_month >= SPEED_READER_MONTHLY:
            due.append(SPEED_READER)
        if current_streak == WEEK_WARRIOR_STREAK:
            due.append(STREAK_1)
        if current_streak == MONTHLY_MASTER_STREAK:
            due.append(STREAK_4)

        awarded = []
        for badge_type in due:
            try:
                result = self.award_if_unearned(user_id, badge_type)
            except GamificationError:
                logger.exception("Failed to award %s to user %s", badge_type, user_id)
                continue
            if not result.already_earned:
                awarded.append(result)
        return awarded

    def get_recent(self, user_id: str, limit: int = 10) -> list[AchievementResponse]:
        """Get a user's most recently earned achievements.

        Args:
            user_id: User ID
            limit: Maximum entries to return

        Returns:
            Achievements, newest first
        """
        with self.db.get_session() as session:
            stmt = (
                select(Achievement)
                .where(Achievement.user_id == user_id)
                .order_by(Achievement.earned_at.desc())
                .limit(limit)
            )
            achievements = session.execute(stmt).scalars().all()
            return [AchievementResponse.model_validate(a) for a in achievements]

    def has_achievement(self, user_id: str, badge_type: str) -> bool:
        """Check if a user has earned a badge."""
        with self.db.get_session() as session:
            return self._get(session, user_id, badge_type) is not None

    def _get(self, session: Session, user_id: str, badge_type: str) -> Optional[Achievement]:
        stmt = select(Achievement).where(
            Achievement.user_id == user_id,
            Achievement.badge_type == badge_type,
        )
        return session.execute(stmt).scalar_one_or_none()
