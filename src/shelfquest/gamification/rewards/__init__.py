"""Virtual rewards module.

Provides functionality for:
- A typed catalog of badges, titles, achievement tiers and milestones
- Unlocking rewards against an aggregate stats snapshot
- Listing the catalog with locked and unlocked entries
"""

from .catalog import REWARD_CATALOG, RewardDefinition, RewardType, ThresholdField
from .manager import RewardManager, is_threshold_met
from .models import VirtualReward
from .schemas import RewardResponse, StatsSnapshot

__all__ = [
    "RewardManager",
    "VirtualReward",
    "RewardResponse",
    "StatsSnapshot",
    "REWARD_CATALOG",
    "RewardDefinition",
    "RewardType",
    "ThresholdField",
    "is_threshold_met",
]
