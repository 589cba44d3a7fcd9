"""Pydantic schemas for the library snapshot handed to the engine.

The surrounding application owns books and shelves; the engine only sees a
point-in-time copy of the fields it needs.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LibraryBook(BaseModel):
    """A book as seen by the engine."""

    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    author: Optional[str] = None
    finish_date: Optional[date] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    genres: list[str] = Field(default_factory=list)
    format: Optional[str] = None
    publication_year: Optional[int] = None

    @field_validator("finish_date", mode="before")
    @classmethod
    def blank_finish_date(cls, v):
        """Treat an empty or whitespace finish date as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("genres", mode="before")
    @classmethod
    def split_genres(cls, v):
        """Accept a single genre or a comma-separated string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [g.strip() for g in v.split(",") if g.strip()]
        return v

    @property
    def is_finished(self) -> bool:
        """Check if the book has a finish date."""
        return self.finish_date is not None


class LibrarySnapshot(BaseModel):
    """All of a user's books at one point in time."""

    user_id: str
    books: list[LibraryBook] = Field(default_factory=list)

    @property
    def total_books(self) -> int:
        """Number of books in the library."""
        return len(self.books)

    def finished_books(self) -> list[LibraryBook]:
        """Books that have a finish date."""
        return [b for b in self.books if b.is_finished]

    def books_finished_in_month(self, year: int, month: int) -> int:
        """Count books finished in a calendar month."""
        return sum(
            1
            for b in self.books
            if b.finish_date is not None
            and b.finish_date.year == year
            and b.finish_date.month == month
        )

    def with_book(self, book: LibraryBook) -> "LibrarySnapshot":
        """Return a copy with the book added or replacing the one with the same id."""
        books = [b for b in self.books if b.id != book.id]
        books.append(book)
        return LibrarySnapshot(user_id=self.user_id, books=books)
