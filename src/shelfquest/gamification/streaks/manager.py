"""Streak manager for consecutive-day reading streaks."""

import logging
from datetime import date
from typing import NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db, insert_if_absent, retry_on_conflict
from ..errors import ValidationError
from .models import StreakRecord
from .schemas import StreakResponse, StreakState, StreakStatus, StreakUpdateResult

logger = logging.getLogger(__name__)

# A gap of exactly this many days can be bridged once by the freeze
FREEZE_GAP_DAYS = 2


class StreakAdvance(NamedTuple):
    """Outcome of applying one activity date to a streak."""

    state: StreakState
    increased: bool
    changed: bool
    freeze_consumed: bool


def advance_streak(state: StreakState, activity_date: date) -> StreakAdvance:
    """Apply reading activity on `activity_date` to a streak.

    Rules, in order:
    1. No prior activity: the streak starts at 1.
    2. Same day as the last activity: nothing changes.
    3. The next day: +1 and the freeze is re-earned.
    4. Two days later with the freeze unused: +1 and the freeze is spent.
    5. Anything else: the streak restarts at 1 and the freeze is re-earned.

    The longest streak never decreases.
    """
    last = state.last_activity_date
    current = state.current_streak
    freeze_used = state.freeze_used
    freeze_consumed = False

    if last is None:
        current = 1
    else:
        days_diff = (activity_date - last).days

        if days_diff == 0:
            return StreakAdvance(state=state, increased=False, changed=False, freeze_consumed=False)
        elif days_diff == 1:
            current += 1
            freeze_used = False
        elif days_diff == FREEZE_GAP_DAYS and not freeze_used:
            current += 1
            freeze_used = True
            freeze_consumed = True
        else:
            current = 1
            freeze_used = False

    new_state = StreakState(
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_activity_date=activity_date,
        freeze_used=freeze_used,
    )
    return StreakAdvance(
        state=new_state,
        increased=current > state.current_streak,
        changed=True,
        freeze_consumed=freeze_consumed,
    )


def streak_status(state: StreakState, today: date) -> StreakStatus:
    """Classify a streak relative to today."""
    last = state.last_activity_date
    if last is None or state.current_streak == 0:
        return StreakStatus.NONE

    days_since = (today - last).days
    if days_since <= 0:
        return StreakStatus.ACTIVE
    if days_since == 1:
        return StreakStatus.AT_RISK
    if days_since == 2 and not state.freeze_used:
        # Still reachable through the freeze until the end of today
        return StreakStatus.AT_RISK
    return StreakStatus.BROKEN


class StreakManager:
    """Manages per-user reading streaks."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize streak manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def get_streak(self, user_id: str, session: Optional[Session] = None) -> StreakResponse:
        """Get a user's streak, creating an empty one if missing.

        Args:
            user_id: User ID
            session: Optional session to join

        Returns:
            StreakResponse
        """
        if session is not None:
            return StreakResponse.model_validate(self._get_or_create(session, user_id))

        with self.db.get_session() as s:
            return StreakResponse.model_validate(self._get_or_create(s, user_id))

    def record_activity(
        self,
        user_id: str,
        activity_date: Optional[date] = None,
        session: Optional[Session] = None,
    ) -> StreakUpdateResult:
        """Record reading activity for a day.

        Args:
            user_id: User ID
            activity_date: Day of the activity (default: today)
            session: Optional session to join (no retry; the caller owns it)

        Returns:
            StreakUpdateResult

        Raises:
            ValidationError: If user_id is empty
        """
        if not user_id:
            raise ValidationError("User ID is required")
        if activity_date is None:
            activity_date = date.today()

        def _record(s: Session) -> StreakUpdateResult:
            record = self._get_or_create(s, user_id)
            before = StreakState.model_validate(record)
            advance = advance_streak(before, activity_date)

            if advance.changed:
                record.current_streak = advance.state.current_streak
                record.longest_streak = advance.state.longest_streak
                record.last_activity_date = activity_date.isoformat()
                record.freeze_used = advance.state.freeze_used
                s.flush()

                if advance.freeze_consumed:
                    logger.info("Streak freeze used for user %s on %s", user_id, activity_date)
                elif not advance.increased:
                    logger.info("Streak for user %s restarted on %s", user_id, activity_date)

            return StreakUpdateResult(
                streak=StreakResponse.model_validate(record),
                streak_increased=advance.increased,
                changed=advance.changed,
                freeze_consumed=advance.freeze_consumed,
            )

        if session is not None:
            return _record(session)

        def _run() -> StreakUpdateResult:
            with self.db.get_session() as s:
                return _record(s)

        return retry_on_conflict(_run)

    def get_status(self, user_id: str, today: Optional[date] = None) -> StreakStatus:
        """Get the streak status for a user.

        Args:
            user_id: User ID
            today: Reference day (default: today)

        Returns:
            StreakStatus
        """
        if today is None:
            today = date.today()
        streak = self.get_streak(user_id)
        return streak_status(streak, today)

    def _get_or_create(self, session: Session, user_id: str) -> StreakRecord:
        """Load the streak row, inserting an empty row if absent."""
        stmt = select(StreakRecord).where(StreakRecord.user_id == user_id)
        record = session.execute(stmt).scalar_one_or_none()
        if record is not None:
            return record

        record = StreakRecord(
            user_id=user_id,
            current_streak=0,
            longest_streak=0,
            last_activity_date=None,
            freeze_used=False,
        )
        if not insert_if_absent(session, record):
            # Created concurrently by another transaction
            record = session.execute(stmt).scalar_one()
        return record
