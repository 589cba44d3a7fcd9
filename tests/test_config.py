"""Tests for configuration loading."""

from pathlib import Path

from shelfquest.gamification.config import Config, get_config, reset_config


class TestConfig:
    """Tests for Config.from_env and validation."""

    def test_defaults(self, clean_env):
        """Test defaults when no variables are set."""
        config = Config.from_env()

        assert config.db_path == Path.home() / ".shelfquest" / "gamification.db"
        assert config.db_timeout == 5.0
        assert config.book_finished_xp == 50
        assert config.conflict_retries == 1
        assert config.log_level == "WARNING"

    def test_from_env(self, clean_env, monkeypatch, tmp_path: Path):
        """Test every variable is read."""
        monkeypatch.setenv("SHELFQUEST_DB_PATH", str(tmp_path / "game.db"))
        monkeypatch.setenv("SHELFQUEST_DB_TIMEOUT", "1.5")
        monkeypatch.setenv("SHELFQUEST_BOOK_FINISHED_XP", "25")
        monkeypatch.setenv("SHELFQUEST_CONFLICT_RETRIES", "3")
        monkeypatch.setenv("SHELFQUEST_LOG_LEVEL", "debug")

        config = Config.from_env()

        assert config.db_path == tmp_path / "game.db"
        assert config.db_timeout == 1.5
        assert config.book_finished_xp == 25
        assert config.conflict_retries == 3
        assert config.log_level == "DEBUG"

    def test_memory_path(self, clean_env, monkeypatch):
        """Test the in-memory path is kept as-is."""
        monkeypatch.setenv("SHELFQUEST_DB_PATH", ":memory:")

        assert str(Config.from_env().db_path) == ":memory:"

    def test_validate_ok(self, test_config: Config):
        """Test a valid config has no errors."""
        assert test_config.validate() == []

    def test_validate_errors(self, test_config: Config):
        """Test invalid values are reported."""
        test_config.db_timeout = 0
        test_config.book_finished_xp = -1
        test_config.conflict_retries = -1
        test_config.log_level = "LOUD"

        errors = test_config.validate()
        assert len(errors) == 4

    def test_get_config_cached(self, clean_env, monkeypatch):
        """Test get_config caches until reset."""
        first = get_config()
        monkeypatch.setenv("SHELFQUEST_BOOK_FINISHED_XP", "99")

        assert get_config() is first
        reset_config()
        assert get_config().book_finished_xp == 99
