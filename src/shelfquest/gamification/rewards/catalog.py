"""Virtual reward catalog.

Every entry names the stats field it watches and the value that unlocks it,
so one generic check covers all reward types.
"""

from dataclasses import dataclass
from enum import Enum


class RewardType(str, Enum):
    """Kind of virtual reward."""

    BADGE = "badge"
    TITLE = "title"
    ACHIEVEMENT = "achievement"
    MILESTONE = "milestone"


class ThresholdField(str, Enum):
    """Stats snapshot fields a reward can watch."""

    TOTAL_BOOKS = "total_books"
    FINISHED_BOOKS = "finished_books"
    CURRENT_LEVEL = "current_level"
    CURRENT_STREAK = "current_streak"
    BOOKS_THIS_MONTH = "books_this_month"
    COMPLETED_CHALLENGES = "completed_challenges"


@dataclass(frozen=True)
class RewardDefinition:
    """A catalog entry."""

    reward_type: RewardType
    reward_name: str
    threshold_field: ThresholdField
    threshold_value: int
    emoji: str
    description: str

    @property
    def key(self) -> tuple[str, str]:
        """Natural key within a user's rewards."""
        return (self.reward_type.value, self.reward_name)


REWARD_CATALOG: list[RewardDefinition] = [
    # Badges: finished books
    RewardDefinition(RewardType.BADGE, "First Steps", ThresholdField.FINISHED_BOOKS, 1, "🌱", "Read your first book!"),
    RewardDefinition(RewardType.BADGE, "Bookworm", ThresholdField.FINISHED_BOOKS, 10, "📚", "Read 10 books!"),
    RewardDefinition(RewardType.BADGE, "Bibliophile", ThresholdField.FINISHED_BOOKS, 25, "📖", "Read 25 books!"),
    RewardDefinition(RewardType.BADGE, "Library Legend", ThresholdField.FINISHED_BOOKS, 50, "🏛️", "Read 50 books!"),
    RewardDefinition(RewardType.BADGE, "Centurion", ThresholdField.FINISHED_BOOKS, 100, "💯", "Read 100 books!"),
    RewardDefinition(RewardType.BADGE, "Collector", ThresholdField.TOTAL_BOOKS, 50, "🗄️", "Keep 50 books on your shelves!"),
    # Titles: levels
    RewardDefinition(RewardType.TITLE, "Page Turner", ThresholdField.CURRENT_LEVEL, 2, "📄", "Reach level 2!"),
    RewardDefinition(RewardType.TITLE, "Avid Reader", ThresholdField.CURRENT_LEVEL, 5, "🔖", "Reach level 5!"),
    RewardDefinition(RewardType.TITLE, "Scholar", ThresholdField.CURRENT_LEVEL, 10, "🎓", "Reach level 10!"),
    RewardDefinition(RewardType.TITLE, "Sage", ThresholdField.CURRENT_LEVEL, 20, "🦉", "Reach level 20!"),
    # Achievement tiers: streaks
    RewardDefinition(RewardType.ACHIEVEMENT, "Kindling", ThresholdField.CURRENT_STREAK, 3, "🔥", "3 day reading streak!"),
    RewardDefinition(RewardType.ACHIEVEMENT, "Steady Flame", ThresholdField.CURRENT_STREAK, 7, "🕯️", "7 day reading streak!"),
    RewardDefinition(RewardType.ACHIEVEMENT, "Wildfire", ThresholdField.CURRENT_STREAK, 30, "🌟", "30 day reading streak!"),
    # Milestones
    RewardDefinition(RewardType.MILESTONE, "Speed Reader", ThresholdField.BOOKS_THIS_MONTH, 5, "⚡", "Read 5 books in a month!"),
    RewardDefinition(RewardType.MILESTONE, "Marathoner", ThresholdField.BOOKS_THIS_MONTH, 10, "🏃", "Read 10 books in a month!"),
    RewardDefinition(RewardType.MILESTONE, "Challenger", ThresholdField.COMPLETED_CHALLENGES, 1, "🎯", "Complete a reading challenge!"),
    RewardDefinition(RewardType.MILESTONE, "Challenge Champion", ThresholdField.COMPLETED_CHALLENGES, 5, "🏆", "Complete 5 reading challenges!"),
]
