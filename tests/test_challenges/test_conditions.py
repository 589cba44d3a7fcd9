"""Tests for challenge condition matching."""

from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from shelfquest.gamification.challenges import ChallengeConditions, book_qualifies, check_conditions
from shelfquest.gamification.library import LibraryBook


@pytest.fixture
def book() -> LibraryBook:
    return LibraryBook(
        id="b1",
        title="The Name of the Wind",
        author="Patrick Rothfuss",
        finish_date=date(2025, 3, 1),
        rating=4.5,
        genres=["Fantasy", "Adventure"],
        format="Ebook",
        publication_year=2007,
    )


class TestCheckConditions:
    """Tests for check_conditions."""

    def test_no_conditions_accepts_anything(self, book: LibraryBook):
        """Test a challenge without conditions accepts any book."""
        assert check_conditions(book, None) == []
        assert check_conditions(book, ChallengeConditions()) == []

    def test_genre_case_insensitive(self, book: LibraryBook):
        """Test genre matching ignores case."""
        assert check_conditions(book, ChallengeConditions(genres=["fantasy"])) == []
        assert check_conditions(book, ChallengeConditions(genres=["SCI-FI", "adventure"])) == []

    def test_genre_mismatch(self, book: LibraryBook):
        """Test a book outside the genres fails."""
        assert check_conditions(book, ChallengeConditions(genres=["Romance"])) == ["genres"]

    def test_author_any_of(self, book: LibraryBook):
        """Test author is an any-of match."""
        conditions = ChallengeConditions(authors=["Brandon Sanderson", "patrick rothfuss"])
        assert check_conditions(book, conditions) == []
        assert check_conditions(book, ChallengeConditions(authors=["Ursula K. Le Guin"])) == ["authors"]

    def test_format(self, book: LibraryBook):
        """Test format is an any-of match."""
        assert check_conditions(book, ChallengeConditions(formats=["ebook", "audiobook"])) == []
        assert check_conditions(book, ChallengeConditions(formats=["Hardcover"])) == ["formats"]

    def test_min_rating(self, book: LibraryBook):
        """Test rating must reach the minimum."""
        assert check_conditions(book, ChallengeConditions(min_rating=4.5)) == []
        assert check_conditions(book, ChallengeConditions(min_rating=5)) == ["min_rating"]

    def test_year_bounds_independent(self, book: LibraryBook):
        """Test each year bound applies on its own."""
        assert check_conditions(book, ChallengeConditions(year_min=2000)) == []
        assert check_conditions(book, ChallengeConditions(year_max=2010)) == []
        assert check_conditions(book, ChallengeConditions(year_min=2007, year_max=2007)) == []
        assert check_conditions(book, ChallengeConditions(year_min=2010)) == ["year_min"]
        assert check_conditions(book, ChallengeConditions(year_max=2000)) == ["year_max"]

    def test_missing_fields_fail(self):
        """Test a book lacking a field fails the conditions that need it."""
        bare = LibraryBook(id="b2", finish_date=date(2025, 3, 1))
        conditions = ChallengeConditions(
            genres=["Fantasy"],
            authors=["Anyone"],
            formats=["Ebook"],
            min_rating=1,
            year_min=1900,
            year_max=2100,
        )

        assert check_conditions(bare, conditions) == [
            "genres",
            "authors",
            "formats",
            "min_rating",
            "year_min",
            "year_max",
        ]

    def test_every_condition_must_hold(self, book: LibraryBook):
        """Test one failing condition rejects the book."""
        conditions = ChallengeConditions(genres=["Fantasy"], min_rating=4, year_max=2000)

        assert check_conditions(book, conditions) == ["year_max"]
        assert book_qualifies(book, conditions) is False

    def test_rating_and_genre_scenario(self):
        """Test a Fantasy book rated 3 fails min rating 4 and one rated 5 passes."""
        conditions = ChallengeConditions(min_rating=4, genres=["Fantasy"])
        low = LibraryBook(id="low", finish_date=date(2025, 3, 1), rating=3, genres=["Fantasy"])
        high = LibraryBook(id="high", finish_date=date(2025, 3, 1), rating=5, genres=["Fantasy"])

        assert check_conditions(low, conditions) == ["min_rating"]
        assert book_qualifies(high, conditions) is True


class TestChallengeConditionsSchema:
    """Tests for condition validation."""

    def test_empty_lists_are_absent(self):
        """Test empty or blank lists impose no constraint."""
        conditions = ChallengeConditions(genres=[], authors=["  "], formats=None)

        assert conditions.genres is None
        assert conditions.authors is None
        assert conditions.is_empty

    def test_year_bounds_ordered(self):
        """Test year_min above year_max is rejected."""
        with pytest.raises(PydanticValidationError):
            ChallengeConditions(year_min=2020, year_max=2000)

    def test_min_rating_range(self):
        """Test min_rating must be between 0 and 5."""
        with pytest.raises(PydanticValidationError):
            ChallengeConditions(min_rating=6)
