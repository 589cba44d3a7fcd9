"""Main entry point for the shelfquest package."""

from shelfquest.gamification.cli import app


if __name__ == "__main__":
    app()
