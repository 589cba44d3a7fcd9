"""Badge catalog for one-time achievements.

The XP paid out for a badge belongs to the catalog, never to the caller.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BadgeDefinition:
    """A badge that can be earned once per user."""

    badge_type: str
    name: str
    emoji: str
    description: str
    xp_reward: int


FIRST_BOOK = "first_book"
TEN_BOOKS = "ten_books"
SPEED_READER = "speed_reader"
STREAK_1 = "streak_1"
STREAK_4 = "streak_4"

BADGES: dict[str, BadgeDefinition] = {
    badge.badge_type: badge
    for badge in (
        BadgeDefinition(FIRST_BOOK, "First Book", "🎉", "Read your first book!", 50),
        BadgeDefinition(TEN_BOOKS, "Bookworm", "📚", "Read 10 books!", 100),
        BadgeDefinition(SPEED_READER, "Speed Reader", "⚡", "Read 5 books in a month!", 150),
        BadgeDefinition(STREAK_1, "Week Warrior", "🔥", "Started a reading streak!", 75),
        BadgeDefinition(STREAK_4, "Monthly Master", "🌟", "Reached a 4-day reading streak!", 200),
    )
}

# Trigger thresholds
FIRST_BOOK_COUNT = 1
BOOKWORM_COUNT = 10
SPEED_READER_MONTHLY = 5
WEEK_WARRIOR_STREAK = 1
MONTHLY_MASTER_STREAK = 4


def get_badge(badge_type: str) -> Optional[BadgeDefinition]:
    """Look up a badge definition by type."""
    return BADGES.get(badge_type)
