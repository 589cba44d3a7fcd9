"""Tests for AchievementManager."""

from datetime import date

import pytest
from sqlalchemy import text

from shelfquest.gamification.achievements import BADGES, AchievementManager
from shelfquest.gamification.achievements.catalog import (
    FIRST_BOOK,
    SPEED_READER,
    STREAK_1,
    STREAK_4,
    TEN_BOOKS,
)
from shelfquest.gamification.db.sqlite import Database
from shelfquest.gamification.errors import TransientPersistenceError, ValidationError
from shelfquest.gamification.library import LibraryBook, LibrarySnapshot
from shelfquest.gamification.xp import XPManager

TODAY = date(2025, 3, 20)


@pytest.fixture
def manager(db: Database, xp_manager: XPManager) -> AchievementManager:
    """Create an AchievementManager with test database."""
    return AchievementManager(db, xp_manager=xp_manager)


def library_with(finished: int, month_finished: int = 0, unfinished: int = 0) -> LibrarySnapshot:
    """Build a library with books finished before this month and during it."""
    books = []
    for i in range(finished - month_finished):
        books.append(LibraryBook(id=f"old-{i}", finish_date=date(2024, 6, 1)))
    for i in range(month_finished):
        books.append(LibraryBook(id=f"new-{i}", finish_date=date(2025, 3, 1 + i)))
    for i in range(unfinished):
        books.append(LibraryBook(id=f"tbr-{i}"))
    return LibrarySnapshot(user_id="alice", books=books)


class TestAwardIfUnearned:
    """Tests for one-time awarding."""

    def test_award_new_badge(self, manager: AchievementManager, xp_manager: XPManager):
        """Test a fresh award stores the badge and grants its XP."""
        result = manager.award_if_unearned("alice", FIRST_BOOK)

        assert result.already_earned is False
        assert result.achievement.badge_name == "First Book"
        assert result.achievement.badge_emoji == "🎉"
        assert result.xp_grant is not None
        assert result.xp_grant.amount == BADGES[FIRST_BOOK].xp_reward
        assert xp_manager.get_account("alice").total_xp == 50

    def test_award_twice_is_idempotent(self, manager: AchievementManager, xp_manager: XPManager):
        """Test a repeat award stores one record and grants XP once."""
        first = manager.award_if_unearned("alice", TEN_BOOKS)
        second = manager.award_if_unearned("alice", TEN_BOOKS)

        assert first.already_earned is False
        assert second.already_earned is True
        assert second.xp_grant is None
        assert second.achievement.id == first.achievement.id
        assert len(manager.get_recent("alice")) == 1
        assert xp_manager.get_account("alice").total_xp == 100
        assert len(xp_manager.get_ledger("alice")) == 1

    def test_same_badge_for_different_users(self, manager: AchievementManager, xp_manager: XPManager):
        """Test the uniqueness key is per user."""
        manager.award_if_unearned("alice", STREAK_1)
        result = manager.award_if_unearned("bob", STREAK_1)

        assert result.already_earned is False
        assert xp_manager.get_account("bob").total_xp == 75

    def test_custom_badge(self, manager: AchievementManager, xp_manager: XPManager):
        """Test a badge outside the catalog needs a name and emoji and pays nothing."""
        result = manager.award_if_unearned("alice", "night_owl", name="Night Owl", emoji="🦉")

        assert result.achievement.badge_type == "night_owl"
        assert result.xp_grant is None
        assert xp_manager.get_account("alice").total_xp == 0

    def test_unknown_badge_without_name(self, manager: AchievementManager):
        """Test an unknown badge without display fields is rejected."""
        with pytest.raises(ValidationError):
            manager.award_if_unearned("alice", "mystery")

    def test_has_achievement(self, manager: AchievementManager):
        """Test has_achievement reflects awards."""
        assert manager.has_achievement("alice", FIRST_BOOK) is False
        manager.award_if_unearned("alice", FIRST_BOOK)
        assert manager.has_achievement("alice", FIRST_BOOK) is True

    def test_award_retried_after_conflict(self, manager: AchievementManager, xp_manager: XPManager, monkeypatch):
        """Test an award whose XP row changes mid-transaction is retried once."""
        xp_manager.get_account("alice")

        original = xp_manager._get_or_create
        calls = []

        def racing(session, user_id):
            account = original(session, user_id)
            if not calls:
                # Another writer bumps the row after our read
                session.execute(
                    text("UPDATE xp_accounts SET version = version + 1 WHERE user_id = :user_id"),
                    {"user_id": user_id},
                )
            calls.append(1)
            return account

        monkeypatch.setattr(xp_manager, "_get_or_create", racing)
        result = manager.award_if_unearned("alice", FIRST_BOOK)

        assert len(calls) == 2
        assert result.already_earned is False
        assert manager.has_achievement("alice", FIRST_BOOK)
        assert xp_manager.get_account("alice").total_xp == 50
        assert len(xp_manager.get_ledger("alice")) == 1


class TestEvaluate:
    """Tests for trigger evaluation."""

    def test_first_book(self, manager: AchievementManager):
        """Test the first finished book awards First Book."""
        awards = manager.evaluate("alice", library_with(1, unfinished=3), current_streak=0, today=TODAY)

        assert [a.achievement.badge_type for a in awards] == [FIRST_BOOK]

    def test_first_book_not_awarded_later(self, manager: AchievementManager):
        """Test First Book is tied to exactly one finished book."""
        awards = manager.evaluate("alice", library_with(2), current_streak=0, today=TODAY)

        assert awards == []

    def test_bookworm_once_when_processed_twice(self, manager: AchievementManager, xp_manager: XPManager):
        """Test the tenth book awards Bookworm exactly once."""
        library = library_with(10)

        first = manager.evaluate("alice", library, current_streak=0, today=TODAY)
        second = manager.evaluate("alice", library, current_streak=0, today=TODAY)

        assert [a.achievement.badge_type for a in first] == [TEN_BOOKS]
        assert second == []
        assert [a.badge_type for a in manager.get_recent("alice")] == [TEN_BOOKS]
        assert xp_manager.get_account("alice").total_xp == 100

    def test_speed_reader(self, manager: AchievementManager):
        """Test five books in the current month awards Speed Reader."""
        awards = manager.evaluate("alice", library_with(7, month_finished=5), current_streak=0, today=TODAY)

        assert SPEED_READER in [a.achievement.badge_type for a in awards]

    def test_speed_reader_needs_current_month(self, manager: AchievementManager):
        """Test books finished in other months do not count."""
        awards = manager.evaluate("alice", library_with(7, month_finished=4), current_streak=0, today=TODAY)

        assert awards == []

    def test_streak_badges(self, manager: AchievementManager):
        """Test streak lengths 1 and 4 award their badges."""
        first = manager.evaluate("alice", library_with(0), current_streak=1, today=TODAY)
        second = manager.evaluate("alice", library_with(0), current_streak=4, today=TODAY)

        assert [a.achievement.badge_type for a in first] == [STREAK_1]
        assert [a.achievement.badge_type for a in second] == [STREAK_4]

    def test_independent_triggers(self, manager: AchievementManager, xp_manager: XPManager):
        """Test several triggers fire in one evaluation."""
        awards = manager.evaluate("alice", library_with(1, month_finished=1), current_streak=1, today=TODAY)

        assert {a.achievement.badge_type for a in awards} == {FIRST_BOOK, STREAK_1}
        assert xp_manager.get_account("alice").total_xp == 125

    def test_failed_badge_does_not_block_others(self, manager: AchievementManager, xp_manager: XPManager, monkeypatch):
        """Test one failing award still lets the other triggers award."""
        original = manager.award_if_unearned

        def flaky(user_id, badge_type, *args, **kwargs):
            if badge_type == FIRST_BOOK:
                raise TransientPersistenceError("database is locked")
            return original(user_id, badge_type, *args, **kwargs)

        monkeypatch.setattr(manager, "award_if_unearned", flaky)
        awards = manager.evaluate("alice", library_with(1, month_finished=1), current_streak=1, today=TODAY)

        assert [a.achievement.badge_type for a in awards] == [STREAK_1]
        assert not manager.has_achievement("alice", FIRST_BOOK)
        assert xp_manager.get_account("alice").total_xp == 75


class TestGetRecent:
    """Tests for get_recent."""

    def test_limit_and_scope(self, manager: AchievementManager):
        """Test the limit and per-user scoping."""
        for badge_type in (FIRST_BOOK, TEN_BOOKS, SPEED_READER):
            manager.award_if_unearned("alice", badge_type)
        manager.award_if_unearned("bob", STREAK_4)

        assert len(manager.get_recent("alice", limit=2)) == 2
        assert len(manager.get_recent("alice")) == 3
        assert [a.badge_type for a in manager.get_recent("bob")] == [STREAK_4]
