"""Configuration management for the gamification engine.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class Config:
    """Engine configuration."""

    # Database
    db_path: Path
    db_timeout: float  # seconds a persistence call may wait on a lock

    # Rewards
    book_finished_xp: int

    # Concurrency
    conflict_retries: int

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "SHELFQUEST_DB_PATH",
            str(Path.home() / ".shelfquest" / "gamification.db"),
        )
        db_path = Path(db_path_str).expanduser() if db_path_str != ":memory:" else Path(db_path_str)

        return cls(
            db_path=db_path,
            db_timeout=float(os.environ.get("SHELFQUEST_DB_TIMEOUT", "5.0")),
            book_finished_xp=int(os.environ.get("SHELFQUEST_BOOK_FINISHED_XP", "50")),
            conflict_retries=int(os.environ.get("SHELFQUEST_CONFLICT_RETRIES", "1")),
            log_level=os.environ.get("SHELFQUEST_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.db_timeout <= 0:
            errors.append(f"Database timeout must be positive: {self.db_timeout}")
        if self.book_finished_xp < 0:
            errors.append(f"Book finished XP cannot be negative: {self.book_finished_xp}")
        if self.conflict_retries < 0:
            errors.append(f"Conflict retries cannot be negative: {self.conflict_retries}")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Unknown log level: {self.log_level}")

        # Check database directory is writable
        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
