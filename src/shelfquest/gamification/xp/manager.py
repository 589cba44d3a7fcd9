"""XP manager for granting experience points and tracking levels."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db, insert_if_absent, retry_on_conflict
from ..errors import ValidationError
from .levels import LevelState, apply_xp
from .models import XPAccount, XPLedgerEntry
from .schemas import XPAccountResponse, XPGrantResult, XPLedgerEntryResponse

logger = logging.getLogger(__name__)


class XPManager:
    """Manages XP accounts, grants and the grant ledger."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize XP manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def get_account(self, user_id: str, session: Optional[Session] = None) -> XPAccountResponse:
        """Get a user's XP account, creating it with defaults if missing.

        Args:
            user_id: User ID
            session: Optional session to join

        Returns:
            XPAccountResponse
        """
        if session is not None:
            return XPAccountResponse.model_validate(self._get_or_create(session, user_id))

        with self.db.get_session() as s:
            return XPAccountResponse.model_validate(self._get_or_create(s, user_id))

    def grant_xp(
        self,
        user_id: str,
        amount: int,
        reason: str = "",
        idempotency_key: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> XPGrantResult:
        """Grant XP to a user and recompute their level.

        The account row is replaced under an optimistic lock, so two
        concurrent grants cannot both build on the same baseline. When the
        manager owns the transaction a conflict is retried from a fresh read.

        Args:
            user_id: User ID
            amount: Non-negative XP amount
            reason: Audit text stored in the ledger
            idempotency_key: If given, a second grant with the same key is a no-op
            session: Optional session to join (no retry; the caller owns it)

        Returns:
            XPGrantResult with the new account and level-up information

        Raises:
            ValidationError: If amount is negative or user_id is empty
        """
        if not user_id:
            raise ValidationError("User ID is required")
        if amount < 0:
            raise ValidationError(f"XP amount cannot be negative, got {amount}")

        def _grant(s: Session) -> XPGrantResult:
            account = self._get_or_create(s, user_id)
            before = account.level_state()

            entry = XPLedgerEntry(
                user_id=user_id,
                amount=amount,
                reason=reason,
                idempotency_key=idempotency_key,
            )
            if idempotency_key is not None:
                if not insert_if_absent(s, entry):
                    logger.debug("XP grant %s already applied for user %s", idempotency_key, user_id)
                    return XPGrantResult(
                        account=XPAccountResponse.model_validate(account),
                        amount=0,
                        reason=reason,
                        leveled_up=False,
                        previous_level=before.current_level,
                        new_level=before.current_level,
                        duplicate=True,
                    )
            else:
                s.add(entry)

            grant = apply_xp(LevelState.from_total(before.total_xp), amount)
            account.replace_state(grant.state)
            s.flush()

            leveled_up = grant.new_level > before.current_level
            if leveled_up:
                logger.info(
                    "User %s leveled up: %d -> %d (%s)",
                    user_id,
                    before.current_level,
                    grant.new_level,
                    reason,
                )

            return XPGrantResult(
                account=XPAccountResponse.model_validate(account),
                amount=amount,
                reason=reason,
                leveled_up=leveled_up,
                previous_level=before.current_level,
                new_level=grant.new_level,
            )

        if session is not None:
            return _grant(session)

        def _run() -> XPGrantResult:
            with self.db.get_session() as s:
                return _grant(s)

        return retry_on_conflict(_run)

    def get_ledger(self, user_id: str, limit: int = 50) -> list[XPLedgerEntryResponse]:
        """Get a user's most recent XP grants.

        Args:
            user_id: User ID
            limit: Maximum entries to return

        Returns:
            Ledger entries, newest first
        """
        with self.db.get_session() as session:
            stmt = (
                select(XPLedgerEntry)
                .where(XPLedgerEntry.user_id == user_id)
                .order_by(XPLedgerEntry.created_at.desc())
                .limit(limit)
            )
            entries = session.execute(stmt).scalars().all()
            return [XPLedgerEntryResponse.model_validate(e) for e in entries]

    def _get_or_create(self, session: Session, user_id: str) -> XPAccount:
        """Load the account row, inserting the default row if absent."""
        stmt = select(XPAccount).where(XPAccount.user_id == user_id)
        account = session.execute(stmt).scalar_one_or_none()
        if account is not None:
            return account

        default = LevelState.from_total(0)
        account = XPAccount(
            user_id=user_id,
            total_xp=default.total_xp,
            current_level=default.current_level,
            xp_to_next_level=default.xp_to_next_level,
        )
        if not insert_if_absent(session, account):
            # Created concurrently by another transaction
            account = session.execute(stmt).scalar_one()
        return account
