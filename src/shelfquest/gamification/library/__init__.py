"""Library snapshot module.

Provides the read-only view of a user's books that the engine evaluates
achievements, rewards and challenge conditions against.
"""

from .schemas import LibraryBook, LibrarySnapshot

__all__ = [
    "LibraryBook",
    "LibrarySnapshot",
]
