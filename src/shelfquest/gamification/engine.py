"""Book-finished orchestrator.

The engine is the single write entry point. Given a finished book and a
snapshot of the user's library it runs, in order: the per-book XP grant,
the streak update, achievement evaluation, challenge progress and reward
unlocking. Each step is isolated; a failure is logged and reported as a
warning, and the remaining steps still run.
"""

import logging
from datetime import date
from typing import Callable, Optional, TypeVar, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from .achievements import AchievementManager, AchievementResponse
from .challenges import ChallengeManager, ChallengeOutcome, ChallengeResponse
from .config import Config, get_config
from .db.sqlite import Database, get_db
from .errors import GamificationError, ValidationError
from .library import LibraryBook, LibrarySnapshot
from .rewards import RewardManager, RewardResponse, RewardType, StatsSnapshot
from .streaks import StreakManager, StreakResponse
from .xp import LevelUp, XPAccountResponse, XPGrantResult, XPManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StepWarning(BaseModel):
    """A step that failed without aborting the event."""

    step: str
    error_type: str
    message: str
    retryable: bool = False


class OrchestrationResult(BaseModel):
    """Everything a finished book triggered, for the caller to announce."""

    user_id: str
    book_id: str
    xp: Optional[XPAccountResponse] = None
    xp_gained: int = 0
    level_ups: list[LevelUp] = Field(default_factory=list)
    streak: Optional[StreakResponse] = None
    streak_increased: bool = False
    new_achievements: list[AchievementResponse] = Field(default_factory=list)
    challenge_outcomes: list[ChallengeOutcome] = Field(default_factory=list)
    new_rewards: list[RewardResponse] = Field(default_factory=list)
    warnings: list[StepWarning] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Check if every step ran without error."""
        return not self.warnings

    @property
    def leveled_up(self) -> bool:
        return bool(self.level_ups)

    @property
    def completed_challenges(self) -> list[ChallengeOutcome]:
        """Challenges this book completed for the user."""
        return [o for o in self.challenge_outcomes if o.newly_completed]

    def record_grant(self, grant: Optional[XPGrantResult]) -> None:
        """Fold an XP grant into the running totals."""
        if grant is None or grant.duplicate:
            return
        self.xp = grant.account
        self.xp_gained += grant.amount
        if grant.leveled_up:
            self.level_ups.append(
                LevelUp(
                    previous_level=grant.previous_level,
                    new_level=grant.new_level,
                    total_xp=grant.account.total_xp,
                    reason=grant.reason,
                )
            )


class GamificationEngine:
    """Coordinates the XP, streak, achievement, challenge and reward managers."""

    def __init__(self, db: Optional[Database] = None, config: Optional[Config] = None):
        """Initialize the engine.

        Args:
            db: Database instance
            config: Engine configuration (default: loaded from the environment)
        """
        self.db = db or get_db()
        self.config = config or get_config()

        self.xp = XPManager(self.db)
        self.streaks = StreakManager(self.db)
        self.achievements = AchievementManager(self.db, xp_manager=self.xp)
        self.challenges = ChallengeManager(self.db, xp_manager=self.xp)
        self.rewards = RewardManager(self.db)

    def handle_book_finished(
        self,
        user_id: str,
        book: Union[LibraryBook, dict],
        library: LibrarySnapshot,
        today: Optional[date] = None,
    ) -> OrchestrationResult:
        """Process a "book finished" event.

        Safe to re-invoke with the same book: every step is idempotent, so a
        retried event neither double-grants XP nor double-counts the book.

        Args:
            user_id: User who finished the book
            book: The finished book
            library: The user's library, with or without the book
            today: Reference day for challenge periods and monthly counts

        Returns:
            OrchestrationResult, with a warning per failed step

        Raises:
            ValidationError: If the user or the book's finish date is missing.
                Nothing is written in that case.
        """
        if not user_id:
            raise ValidationError("User ID is required")
        if isinstance(book, dict):
            try:
                book = LibraryBook.model_validate(book)
            except PydanticValidationError as e:
                raise ValidationError(str(e)) from e
        if not book.is_finished:
            raise ValidationError(f"Book {book.id} has no finish date")
        if today is None:
            today = date.today()

        library = library.with_book(book)
        result = OrchestrationResult(user_id=user_id, book_id=book.id)
        logger.debug("Handling finished book %s for user %s", book.id, user_id)

        # 1. Per-book XP
        grant = self._run_step(
            result,
            "xp",
            lambda: self.xp.grant_xp(
                user_id,
                self.config.book_finished_xp,
                reason=f"Finished book: {book.title or book.id}",
                idempotency_key=f"book_finished:{user_id}:{book.id}",
            ),
        )
        result.record_grant(grant)

        # 2. Streak on the finish date
        streak_update = self._run_step(
            result,
            "streak",
            lambda: self.streaks.record_activity(user_id, book.finish_date),
        )
        if streak_update is not None:
            result.streak = streak_update.streak
            result.streak_increased = streak_update.streak_increased

        def _current_streak() -> int:
            if result.streak is not None:
                return result.streak.current_streak
            return self.streaks.get_streak(user_id).current_streak

        # 3. Achievements
        awards = self._run_step(
            result,
            "achievements",
            lambda: self.achievements.evaluate(user_id, library, _current_streak(), today=today),
        )
        for award in awards or []:
            result.new_achievements.append(award.achievement)
            result.record_grant(award.xp_grant)

        # 4. Challenges
        def _apply_challenges():
            active = self.challenges.list_challenges_for_user(user_id, active_only=True, today=today)
            return self.challenges.apply_book_to_challenges(
                user_id, book, challenge_ids=[c.id for c in active], today=today
            )

        applied = self._run_step(result, "challenges", _apply_challenges)
        if applied is not None:
            result.challenge_outcomes = applied.outcomes
            for challenge_grant in applied.xp_grants:
                result.record_grant(challenge_grant)

        # 5. Virtual rewards
        def _unlock_rewards() -> list[RewardResponse]:
            account = self.xp.get_account(user_id)
            stats = StatsSnapshot.from_library(
                library,
                current_level=account.current_level,
                current_streak=_current_streak(),
                completed_challenges=self.challenges.count_completed_for_user(user_id),
                today=today,
            )
            return self.rewards.evaluate_and_unlock(user_id, stats)

        result.new_rewards = self._run_step(result, "rewards", _unlock_rewards) or []

        # Final XP account, covering grants made by earlier runs of this event
        account = self._run_step(result, "summary", lambda: self.xp.get_account(user_id))
        if account is not None:
            result.xp = account

        if result.warnings:
            logger.warning(
                "Book %s for user %s processed with %d failed step(s): %s",
                book.id,
                user_id,
                len(result.warnings),
                ", ".join(w.step for w in result.warnings),
            )
        return result

    # -------------------------------------------------------------------------
    # Read accessors
    # -------------------------------------------------------------------------

    def get_xp(self, user_id: str) -> XPAccountResponse:
        """Get a user's XP account."""
        return self.xp.get_account(user_id)

    def get_streak(self, user_id: str) -> StreakResponse:
        """Get a user's streak."""
        return self.streaks.get_streak(user_id)

    def get_recent_achievements(self, user_id: str, limit: int = 10) -> list[AchievementResponse]:
        """Get a user's most recent achievements."""
        return self.achievements.get_recent(user_id, limit=limit)

    def get_rewards(self, user_id: str, reward_type: Optional[RewardType] = None) -> list[RewardResponse]:
        """Get a user's unlocked rewards."""
        return self.rewards.get_rewards(user_id, reward_type=reward_type)

    def get_reward_catalog(self, user_id: str) -> list[RewardResponse]:
        """Get the reward catalog with the user's locked and unlocked entries."""
        return self.rewards.get_catalog(user_id)

    def get_challenges(
        self,
        user_id: str,
        active_only: bool = False,
        today: Optional[date] = None,
    ) -> list[ChallengeResponse]:
        """Get the user's challenges with every participant's progress."""
        return self.challenges.list_challenges_for_user(user_id, active_only=active_only, today=today)

    def _run_step(self, result: OrchestrationResult, step: str, operation: Callable[[], T]) -> Optional[T]:
        """Run one step, turning a failure into a warning on the result."""
        try:
            return operation()
        except (GamificationError, SQLAlchemyError) as e:
            logger.exception("Step '%s' failed for user %s, book %s", step, result.user_id, result.book_id)
            result.warnings.append(
                StepWarning(
                    step=step,
                    error_type=type(e).__name__,
                    message=str(e),
                    retryable=getattr(e, "retryable", False),
                )
            )
            return None
