"""Reward manager for unlocking catalog rewards."""

import logging
from typing import Optional

from sqlalchemy import select

from ..db.sqlite import Database, get_db, insert_if_absent
from ..errors import ValidationError
from .catalog import REWARD_CATALOG, RewardDefinition, RewardType
from .models import VirtualReward
from .schemas import RewardResponse, StatsSnapshot

logger = logging.getLogger(__name__)


def is_threshold_met(definition: RewardDefinition, stats: StatsSnapshot) -> bool:
    """Check a catalog entry against a stats snapshot."""
    return getattr(stats, definition.threshold_field.value) >= definition.threshold_value


class RewardManager:
    """Manages virtual reward unlocking and display."""

    def __init__(
        self,
        db: Optional[Database] = None,
        catalog: Optional[list[RewardDefinition]] = None,
    ):
        """Initialize reward manager.

        Args:
            db: Database instance
            catalog: Reward catalog (default: REWARD_CATALOG)
        """
        self.db = db or get_db()
        self.catalog = catalog if catalog is not None else REWARD_CATALOG

    def evaluate_and_unlock(self, user_id: str, stats: StatsSnapshot) -> list[RewardResponse]:
        """Unlock every catalog reward whose threshold is currently met.

        Args:
            user_id: User ID
            stats: Current stats snapshot

        Returns:
            Only the rewards unlocked by this call
        """
        if not user_id:
            raise ValidationError("User ID is required")

        unlocked = []
        with self.db.get_session() as session:
            for definition in self.catalog:
                if not is_threshold_met(definition, stats):
                    continue

                reward = VirtualReward(
                    user_id=user_id,
                    reward_type=definition.reward_type.value,
                    reward_name=definition.reward_name,
                    reward_value=str(definition.threshold_value),
                    emoji=definition.emoji,
                    description=definition.description,
                )
                if insert_if_absent(session, reward):
                    logger.info(
                        "User %s unlocked %s '%s'",
                        user_id,
                        definition.reward_type.value,
                        definition.reward_name,
                    )
                    unlocked.append(RewardResponse.model_validate(reward))

        return unlocked

    def get_rewards(self, user_id: str, reward_type: Optional[RewardType] = None) -> list[RewardResponse]:
        """Get a user's unlocked rewards.

        Args:
            user_id: User ID
            reward_type: Filter by type

        Returns:
            Rewards, most recently unlocked first
        """
        with self.db.get_session() as session:
            stmt = select(VirtualReward).where(VirtualReward.user_id == user_id)
            if reward_type:
                stmt = stmt.where(VirtualReward.reward_type == reward_type.value)
            stmt = stmt.order_by(VirtualReward.unlocked_at.desc())

            rewards = session.execute(stmt).scalars().all()
            return [RewardResponse.model_validate(r) for r in rewards]

    def get_catalog(self, user_id: str) -> list[RewardResponse]:
        """Get the whole catalog with the user's unlock state.

        Entries the user has not unlocked come back with unlocked_at None.

        Args:
            user_id: User ID

        Returns:
            One entry per catalog reward, in catalog order
        """
        unlocked = {(r.reward_type.value, r.reward_name): r for r in self.get_rewards(user_id)}

        entries = []
        for definition in self.catalog:
            existing = unlocked.get(definition.key)
            if existing is not None:
                entries.append(existing)
            else:
                entries.append(
                    RewardResponse(
                        reward_type=definition.reward_type,
                        reward_name=definition.reward_name,
                        reward_value=str(definition.threshold_value),
                        emoji=definition.emoji,
                        description=definition.description,
                        unlocked_at=None,
                    )
                )
        return entries
