"""Condition matching between books and challenges."""

from typing import Optional

from ..library.schemas import LibraryBook
from .schemas import ChallengeConditions


def _normalize(values) -> set[str]:
    return {v.strip().casefold() for v in values if v and v.strip()}


def _matches_any(value: Optional[str], accepted: list[str]) -> bool:
    if not value:
        return False
    return value.strip().casefold() in _normalize(accepted)


def check_conditions(book: LibraryBook, conditions: Optional[ChallengeConditions]) -> list[str]:
    """Check a book against a challenge's conditions.

    A book missing the field a present condition needs fails that condition.

    Args:
        book: Finished book
        conditions: Challenge conditions, or None for no constraint

    Returns:
        Names of the unmet conditions; empty if the book qualifies
    """
    if conditions is None:
        return []

    unmet = []

    if conditions.genres and not (_normalize(book.genres) & _normalize(conditions.genres)):
        unmet.append("genres")

    if conditions.authors and not _matches_any(book.author, conditions.authors):
        unmet.append("authors")

    if conditions.formats and not _matches_any(book.format, conditions.formats):
        unmet.append("formats")

    if conditions.min_rating is not None:
        if book.rating is None or book.rating < conditions.min_rating:
            unmet.append("min_rating")

    if conditions.year_min is not None:
        if book.publication_year is None or book.publication_year < conditions.year_min:
            unmet.append("year_min")

    if conditions.year_max is not None:
        if book.publication_year is None or book.publication_year > conditions.year_max:
            unmet.append("year_max")

    return unmet


def book_qualifies(book: LibraryBook, conditions: Optional[ChallengeConditions]) -> bool:
    """Check if a book satisfies every present condition."""
    return not check_conditions(book, conditions)
