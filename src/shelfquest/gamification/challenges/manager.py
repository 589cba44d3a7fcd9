"""Challenge manager for shared, conditional reading challenges."""

import logging
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from ..db.sqlite import Database, get_db, insert_if_absent, retry_on_conflict
from ..errors import NotFoundError, ValidationError
from ..library.schemas import LibraryBook
from ..xp.manager import XPManager
from ..xp.schemas import XPGrantResult
from .conditions import check_conditions
from .models import Challenge, ChallengeBook, ChallengeMember, ChallengeProgress
from .schemas import (
    ChallengeApplyResult,
    ChallengeConditions,
    ChallengeCreate,
    ChallengeOutcome,
    ChallengeResponse,
    ChallengeUpdate,
    OutcomeStatus,
    ParticipantProgress,
)

logger = logging.getLogger(__name__)


class ChallengeManager:
    """Manages challenges and per-participant progress."""

    def __init__(self, db: Optional[Database] = None, xp_manager: Optional[XPManager] = None):
        """Initialize challenge manager.

        Args:
            db: Database instance
            xp_manager: XP manager used for completion rewards
        """
        self.db = db or get_db()
        self.xp = xp_manager or XPManager(self.db)

    # -------------------------------------------------------------------------
    # Challenge Management
    # -------------------------------------------------------------------------

    def create_challenge(
        self,
        owner_id: str,
        data: Union[ChallengeCreate, dict],
        today: Optional[date] = None,
    ) -> ChallengeResponse:
        """Create a new challenge.

        Args:
            owner_id: User creating the challenge
            data: Challenge creation data
            today: Reference day for the returned view (default: today)

        Returns:
            Created challenge

        Raises:
            ValidationError: If the data is malformed
        """
        if not owner_id:
            raise ValidationError("Owner ID is required")
        if isinstance(data, dict):
            try:
                data = ChallengeCreate.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError(str(e)) from e

        with self.db.get_session() as session:
            challenge = Challenge(
                owner_id=owner_id,
                name=data.name,
                description=data.description,
                target_count=data.target_count,
                reward_xp=data.reward_xp,
                start_date=data.start_date.isoformat(),
                end_date=data.end_date.isoformat(),
            )
            if data.conditions and not data.conditions.is_empty:
                challenge.set_conditions(data.conditions.model_dump(exclude_none=True))

            for user_id in dict.fromkeys(data.shared_with):
                if user_id and user_id != owner_id:
                    challenge.members.append(ChallengeMember(user_id=user_id))

            session.add(challenge)
            session.flush()

            logger.info("User %s created challenge %s (%s)", owner_id, challenge.id, challenge.name)
            return self._to_response(challenge, today)

    def get_challenge(self, challenge_id: str, today: Optional[date] = None) -> ChallengeResponse:
        """Get a challenge with every participant's progress.

        Args:
            challenge_id: Challenge ID
            today: Reference day for active/closed flags (default: today)

        Returns:
            ChallengeResponse

        Raises:
            NotFoundError: If the challenge does not exist
        """
        with self.db.get_session() as session:
            challenge = self._load(session, challenge_id)
            return self._to_response(challenge, today)

    def list_challenges_for_user(
        self,
        user_id: str,
        active_only: bool = False,
        today: Optional[date] = None,
    ) -> list[ChallengeResponse]:
        """List challenges a user owns or was shared.

        Args:
            user_id: User ID
            active_only: Only return challenges the user can still progress on today
            today: Reference day (default: today)

        Returns:
            Challenges, newest start date first
        """
        if today is None:
            today = date.today()

        with self.db.get_session() as session:
            shared = select(ChallengeMember.challenge_id).where(ChallengeMember.user_id == user_id)
            stmt = (
                select(Challenge)
                .where(or_(Challenge.owner_id == user_id, Challenge.id.in_(shared)))
                .options(selectinload(Challenge.members), selectinload(Challenge.progress))
                .order_by(Challenge.start_date.desc())
            )
            if active_only:
                iso = today.isoformat()
                stmt = stmt.where(Challenge.start_date <= iso, Challenge.end_date >= iso)

            challenges = session.execute(stmt).scalars().all()
            responses = [self._to_response(c, today) for c in challenges]

        if active_only:
            responses = [
                r for r in responses
                if not (r.progress_for(user_id) and r.progress_for(user_id).completed)
            ]
        return responses

    def update_challenge(
        self,
        challenge_id: str,
        data: ChallengeUpdate,
        today: Optional[date] = None,
    ) -> ChallengeResponse:
        """Update a challenge.

        Lowering the target completes every participant already at the new
        target and pays them the reward XP once.

        Args:
            challenge_id: Challenge ID
            data: Update data

        Returns:
            Updated challenge

        Raises:
            NotFoundError: If the challenge does not exist
            ValidationError: If the new end date precedes the start date
        """
        update_data = data.model_dump(exclude_unset=True)

        def _run() -> ChallengeResponse:
            with self.db.get_session() as session:
                challenge = self._load(session, challenge_id)

                for field, value in update_data.items():
                    if field == "conditions":
                        conditions = data.conditions
                        challenge.set_conditions(
                            conditions.model_dump(exclude_none=True)
                            if conditions and not conditions.is_empty
                            else None
                        )
                    elif field == "end_date" and value is not None:
                        if value.isoformat() < challenge.start_date:
                            raise ValidationError("end_date must not be before start_date")
                        challenge.end_date = value.isoformat()
                    elif value is not None and hasattr(challenge, field):
                        setattr(challenge, field, value)

                if update_data.get("target_count") is not None:
                    for progress in challenge.progress:
                        if (
                            progress.completed_at is None
                            and progress.completed_book_count >= challenge.target_count
                        ):
                            self._complete(session, challenge, progress)

                challenge.updated_at = datetime.now(timezone.utc).isoformat()
                session.flush()

                return self._to_response(challenge, today)

        return retry_on_conflict(_run)

    def delete_challenge(self, challenge_id: str) -> bool:
        """Delete a challenge with its members, progress and book links.

        Args:
            challenge_id: Challenge ID

        Returns:
            True if deleted
        """
        with self.db.get_session() as session:
            challenge = session.get(Challenge, challenge_id)
            if not challenge:
                return False

            session.delete(challenge)
            return True

    def share_challenge(self, challenge_id: str, user_ids: Iterable[str]) -> ChallengeResponse:
        """Share a challenge with more users.

        Args:
            challenge_id: Challenge ID
            user_ids: Users to add; existing members and the owner are ignored

        Returns:
            Updated challenge

        Raises:
            NotFoundError: If the challenge does not exist
        """
        with self.db.get_session() as session:
            challenge = self._load(session, challenge_id)

            for user_id in dict.fromkeys(user_ids):
                if not user_id or user_id == challenge.owner_id:
                    continue
                insert_if_absent(session, ChallengeMember(challenge_id=challenge.id, user_id=user_id))

            session.expire(challenge, ["members"])
            return self._to_response(challenge)

    def unshare_challenge(self, challenge_id: str, user_id: str) -> bool:
        """Remove a member from a challenge. Their progress row is kept.

        Args:
            challenge_id: Challenge ID
            user_id: Member to remove

        Returns:
            True if the user was a member
        """
        with self.db.get_session() as session:
            stmt = select(ChallengeMember).where(
                ChallengeMember.challenge_id == challenge_id,
                ChallengeMember.user_id == user_id,
            )
            member = session.execute(stmt).scalar_one_or_none()
            if not member:
                return False

            session.delete(member)
            return True

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def apply_book_to_challenges(
        self,
        user_id: str,
        book: LibraryBook,
        challenge_ids: Optional[Iterable[str]] = None,
        today: Optional[date] = None,
    ) -> ChallengeApplyResult:
        """Count a finished book toward a user's challenges.

        Each challenge is updated in its own transaction: conditions are
        checked, the (challenge, book) link is inserted atomically, and the
        participant's count is incremented. Crossing the target for the first
        time pays the challenge's reward XP to that participant.

        Args:
            user_id: Participant who finished the book
            book: The finished book
            challenge_ids: Candidate challenges (default: all the user's challenges)
            today: Reference day for the challenge period (default: today)

        Returns:
            ChallengeApplyResult with one outcome per candidate challenge

        Raises:
            NotFoundError: If a given challenge does not exist
        """
        if not user_id:
            raise ValidationError("User ID is required")
        if today is None:
            today = date.today()

        result = ChallengeApplyResult()

        if not book.is_finished:
            logger.debug("Book %s has no finish date, not counting toward challenges", book.id)
            return result

        if challenge_ids is None:
            candidates = [c.id for c in self.list_challenges_for_user(user_id, today=today)]
        else:
            candidates = list(dict.fromkeys(challenge_ids))
            self._ensure_exist(candidates)

        for challenge_id in candidates:

            def _run(challenge_id: str = challenge_id) -> ChallengeOutcome:
                with self.db.get_session() as session:
                    return self._apply_one(session, challenge_id, user_id, book, today)

            outcome = retry_on_conflict(_run)
            result.outcomes.append(outcome)
            if outcome.xp_grant is not None and not outcome.xp_grant.duplicate:
                result.xp_grants.append(outcome.xp_grant)

        return result

    def get_participant_progress(self, challenge_id: str) -> list[ParticipantProgress]:
        """Get every participant's progress, owner first.

        Raises:
            NotFoundError: If the challenge does not exist
        """
        return self.get_challenge(challenge_id).participants

    def get_challenge_books(self, challenge_id: str) -> list[str]:
        """Get IDs of books counted toward a challenge, most recent first."""
        with self.db.get_session() as session:
            stmt = (
                select(ChallengeBook.book_id)
                .where(ChallengeBook.challenge_id == challenge_id)
                .order_by(ChallengeBook.counted_at.desc())
            )
            return list(session.execute(stmt).scalars().all())

    def count_completed_for_user(self, user_id: str) -> int:
        """Count challenges the user has completed as a participant."""
        with self.db.get_session() as session:
            stmt = (
                select(func.count())
                .select_from(ChallengeProgress)
                .join(Challenge, Challenge.id == ChallengeProgress.challenge_id)
                .where(
                    ChallengeProgress.user_id == user_id,
                    ChallengeProgress.completed_book_count >= Challenge.target_count,
                )
            )
            return session.execute(stmt).scalar() or 0

    def _apply_one(
        self,
        session: Session,
        challenge_id: str,
        user_id: str,
        book: LibraryBook,
        today: date,
    ) -> ChallengeOutcome:
        """Apply a book to one challenge inside the given transaction."""
        challenge = self._load(session, challenge_id)
        progress = challenge.progress_for(user_id)
        count = progress.completed_book_count if progress else 0

        def _outcome(status: OutcomeStatus, **kwargs) -> ChallengeOutcome:
            return ChallengeOutcome(
                challenge_id=challenge.id,
                challenge_name=challenge.name,
                status=status,
                completed_book_count=kwargs.pop("completed_book_count", count),
                target_count=challenge.target_count,
                **kwargs,
            )

        if not challenge.is_participant(user_id):
            return _outcome(OutcomeStatus.NOT_PARTICIPANT)
        if not challenge.in_window(today):
            return _outcome(OutcomeStatus.INACTIVE)
        if count >= challenge.target_count:
            return _outcome(OutcomeStatus.ALREADY_COMPLETED)

        conditions = challenge.get_conditions()
        unmet = check_conditions(book, ChallengeConditions.model_validate(conditions) if conditions else None)
        if unmet:
            logger.debug(
                "Book %s does not meet %s for challenge %s", book.id, ", ".join(unmet), challenge.id
            )
            return _outcome(OutcomeStatus.CONDITION_NOT_MET, unmet_conditions=unmet)

        link = ChallengeBook(challenge_id=challenge.id, book_id=book.id, user_id=user_id)
        if not insert_if_absent(session, link):
            return _outcome(OutcomeStatus.DUPLICATE)

        if progress is None:
            progress = ChallengeProgress(challenge_id=challenge.id, user_id=user_id, completed_book_count=0)
            if not insert_if_absent(session, progress):
                session.expire(challenge, ["progress"])
                progress = challenge.progress_for(user_id)

        progress.completed_book_count += 1
        newly_completed = (
            progress.completed_book_count >= challenge.target_count and progress.completed_at is None
        )

        xp_grant = self._complete(session, challenge, progress) if newly_completed else None

        session.flush()

        return _outcome(
            OutcomeStatus.COUNTED,
            completed_book_count=progress.completed_book_count,
            newly_completed=newly_completed,
            xp_grant=xp_grant,
        )

    def _complete(
        self,
        session: Session,
        challenge: Challenge,
        progress: ChallengeProgress,
    ) -> Optional[XPGrantResult]:
        """Mark a participant complete and pay the reward XP once."""
        progress.completed_at = datetime.now(timezone.utc).isoformat()
        logger.info("User %s completed challenge %s", progress.user_id, challenge.id)
        if challenge.reward_xp <= 0:
            return None
        return self.xp.grant_xp(
            progress.user_id,
            challenge.reward_xp,
            reason=f"Challenge completed: {challenge.name}",
            idempotency_key=f"challenge:{challenge.id}:{progress.user_id}",
            session=session,
        )

    def _ensure_exist(self, challenge_ids: list[str]) -> None:
        """Raise NotFoundError unless every challenge exists."""
        if not challenge_ids:
            return
        with self.db.get_session() as session:
            stmt = select(Challenge.id).where(Challenge.id.in_(challenge_ids))
            found = set(session.execute(stmt).scalars().all())
        missing = [cid for cid in challenge_ids if cid not in found]
        if missing:
            raise NotFoundError(f"Challenge not found: {', '.join(missing)}")

    def _load(self, session: Session, challenge_id: str) -> Challenge:
        """Load a challenge or raise NotFoundError."""
        challenge = session.get(Challenge, challenge_id)
        if challenge is None:
            raise NotFoundError(f"Challenge not found: {challenge_id}")
        return challenge

    def _to_response(self, challenge: Challenge, today: Optional[date] = None) -> ChallengeResponse:
        """Build a response with progress for every participant."""
        if today is None:
            today = date.today()

        participants = []
        for user_id in challenge.participant_ids:
            progress = challenge.progress_for(user_id)
            count = progress.completed_book_count if progress else 0
            participants.append(
                ParticipantProgress(
                    user_id=user_id,
                    completed_book_count=count,
                    target_count=challenge.target_count,
                    completed=count >= challenge.target_count,
                    completed_at=progress.completed_at if progress else None,
                )
            )

        conditions = challenge.get_conditions()
        return ChallengeResponse(
            id=challenge.id,
            owner_id=challenge.owner_id,
            name=challenge.name,
            description=challenge.description,
            target_count=challenge.target_count,
            start_date=date.fromisoformat(challenge.start_date),
            end_date=date.fromisoformat(challenge.end_date),
            reward_xp=challenge.reward_xp,
            shared_with=challenge.member_ids,
            conditions=ChallengeConditions.model_validate(conditions) if conditions else None,
            participants=participants,
            is_completed=challenge.is_completed,
            is_active=challenge.in_window(today),
            is_closed=challenge.is_closed(today),
            created_at=challenge.created_at,
            updated_at=challenge.updated_at,
        )
