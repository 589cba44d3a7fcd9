"""Tests for the CLI interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from shelfquest.gamification.cli import app
from shelfquest.gamification.config import reset_config
from shelfquest.gamification.db.sqlite import reset_db


@pytest.fixture(autouse=True)
def setup_test_db(tmp_path: Path, monkeypatch):
    """Set up a test database for each test."""
    reset_db()
    reset_config()

    monkeypatch.setenv("SHELFQUEST_DB_PATH", str(tmp_path / "cli.db"))

    yield

    # Cleanup
    reset_db()
    reset_config()


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


def create_challenge(runner: CliRunner, *extra: str) -> str:
    """Create a March challenge for alice and return its id."""
    result = runner.invoke(
        app,
        [
            "challenge", "create", "alice", "March", "2",
            "--start", "2025-03-01",
            "--end", "2099-12-31",
            "--reward-xp", "100",
            *extra,
        ],
    )
    assert result.exit_code == 0, result.stdout
    for line in result.stdout.splitlines():
        if line.startswith("ID: "):
            return line[len("ID: "):].strip()
    raise AssertionError("challenge id not printed")


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner: CliRunner):
        """Test that help command works."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "reading challenges" in result.stdout

    def test_version(self, runner: CliRunner):
        """Test version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.stdout

    def test_init_db(self, runner: CliRunner, tmp_path: Path):
        """Test init-db creates the database file."""
        result = runner.invoke(app, ["init-db"])
        assert result.exit_code == 0
        assert "Database ready" in result.stdout
        assert (tmp_path / "cli.db").exists()


class TestStatusCommands:
    """Tests for display commands."""

    def test_status_new_user(self, runner: CliRunner):
        """Test status for a user with no activity."""
        result = runner.invoke(app, ["status", "alice"])
        assert result.exit_code == 0
        assert "Level 1" in result.stdout
        assert "0 days" in result.stdout

    def test_achievements_empty(self, runner: CliRunner):
        """Test achievements for a new user."""
        result = runner.invoke(app, ["achievements", "alice"])
        assert result.exit_code == 0
        assert "No achievements yet" in result.stdout

    def test_rewards_all_shows_locked(self, runner: CliRunner):
        """Test --all lists locked catalog entries."""
        result = runner.invoke(app, ["rewards", "alice", "--all"])
        assert result.exit_code == 0
        assert "First Steps" in result.stdout
        assert "locked" in result.stdout


class TestFinishCommand:
    """Tests for the finish command."""

    def test_finish_book(self, runner: CliRunner):
        """Test finishing a book shows XP and unlocks."""
        result = runner.invoke(app, ["finish", "alice", "book-1", "--date", "2025-03-10"])
        assert result.exit_code == 0
        assert "+175 XP" in result.stdout
        assert "Level up!" in result.stdout
        assert "First Book" in result.stdout

        status = runner.invoke(app, ["status", "alice"])
        assert "Level 2" in status.stdout

        achievements = runner.invoke(app, ["achievements", "alice"])
        assert "First Book" in achievements.stdout

    def test_finish_twice(self, runner: CliRunner):
        """Test replaying the same book grants nothing new."""
        runner.invoke(app, ["finish", "alice", "book-1", "--date", "2025-03-10"])
        result = runner.invoke(app, ["finish", "alice", "book-1", "--date", "2025-03-10"])

        assert result.exit_code == 0
        assert "+175 XP" not in result.stdout
        assert "Level 2, 175 XP total" in result.stdout

    def test_finish_invalid_date(self, runner: CliRunner):
        """Test a malformed date is rejected."""
        result = runner.invoke(app, ["finish", "alice", "book-1", "--date", "10/03/2025"])
        assert result.exit_code == 1
        assert "Invalid finish date" in result.stdout

    def test_finish_invalid_rating(self, runner: CliRunner):
        """Test an out-of-range rating is rejected."""
        result = runner.invoke(app, ["finish", "alice", "book-1", "--rating", "8"])
        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestChallengeCommands:
    """Tests for challenge commands."""

    def test_create_and_list(self, runner: CliRunner):
        """Test creating and listing a challenge."""
        create_challenge(runner, "--share", "bob")

        result = runner.invoke(app, ["challenge", "list", "bob"])
        assert result.exit_code == 0
        assert "March" in result.stdout

    def test_create_invalid(self, runner: CliRunner):
        """Test an invalid target is rejected."""
        result = runner.invoke(app, ["challenge", "create", "alice", "Broken", "0"])
        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_progress_through_finish(self, runner: CliRunner):
        """Test finishing books advances and completes a challenge."""
        challenge_id = create_challenge(runner, "--genre", "Fantasy")

        result = runner.invoke(app, ["finish", "alice", "b1", "--genre", "fantasy"])
        assert "1/2" in result.stdout

        result = runner.invoke(app, ["finish", "alice", "b2", "--genre", "Poetry"])
        assert "condition_not_met" in result.stdout

        result = runner.invoke(app, ["finish", "alice", "b3", "--genre", "Fantasy"])
        assert "COMPLETED" in result.stdout

        show = runner.invoke(app, ["challenge", "show", challenge_id])
        assert show.exit_code == 0
        assert "DONE" in show.stdout

    def test_show_missing(self, runner: CliRunner):
        """Test showing a missing challenge fails."""
        result = runner.invoke(app, ["challenge", "show", "missing"])
        assert result.exit_code == 1
        assert "Challenge not found" in result.stdout

    def test_share(self, runner: CliRunner):
        """Test sharing a challenge."""
        challenge_id = create_challenge(runner)

        result = runner.invoke(app, ["challenge", "share", challenge_id, "carol"])
        assert result.exit_code == 0
        assert "carol" in result.stdout

        listing = runner.invoke(app, ["challenge", "list", "carol"])
        assert "March" in listing.stdout
