"""Database module for local SQLite storage."""

from .models import Base
from .sqlite import Database, get_db, insert_if_absent, retry_on_conflict

__all__ = [
    "Base",
    "Database",
    "get_db",
    "insert_if_absent",
    "retry_on_conflict",
]
