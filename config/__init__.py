"""
Configuration settings for Wordwise.

This module provides the Config class with all settings.
When installed as a package, paths are relative to the package location
or can be overridden via environment variables.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Try multiple locations for .env
for env_path in [
    Path.cwd() / ".env",  # Current working directory
    Path(__file__).parent.parent / ".env",  # Package root (when running from source)
    Path.home() / ".wordwise" / ".env",  # User config directory
]:
    if env_path.exists():
        load_dotenv(env_path, override=True)
        break


def _get_base_dir():
    """Get base directory, preferring environment variable or user config."""
    if os.getenv("WORDWISE_BASE_DIR"):
        return Path(os.getenv("WORDWISE_BASE_DIR"))
    # Default: ~/.wordwise for installed package, or package parent for dev
    user_dir = Path.home() / ".wordwise"
    if user_dir.exists():
        return user_dir
    # Fallback to package parent (for running from source)
    return Path(__file__).parent.parent


def _optional_int(name, default=None):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    if value.strip().lower() in ("none", "off", "0"):
        return None
    return int(value)


class Config:
    """Main configuration class for Wordwise."""

    # Paths - can be overridden via WORDWISE_BASE_DIR env var
    BASE_DIR = _get_base_dir()
    DATA_DIR = BASE_DIR / "data"
    DECK_PATH = Path(os.getenv("WORDWISE_DECK_PATH", str(DATA_DIR / "deck.json")))

    # Logging
    LOG_LEVEL = os.getenv("WORDWISE_LOG_LEVEL", "WARNING").upper()

    # Assessment Settings
    DEFAULT_QUIZ_LENGTH = int(os.getenv("WORDWISE_QUIZ_LENGTH", "10"))
    DEFAULT_TOTAL_TIME = _optional_int("WORDWISE_TOTAL_TIME", 300)  # seconds
    DEFAULT_QUESTION_TIME = int(os.getenv("WORDWISE_QUESTION_TIME", "30"))  # seconds
    FEEDBACK_REVEAL_SECONDS = int(os.getenv("WORDWISE_FEEDBACK_REVEAL_SECONDS", "3"))
    CHOICE_OPTION_COUNT = 4  # correct answer + 3 distractors
    MATCHING_PAIR_COUNT = 4

    # Study advice
    URGENT_SUCCESS_RATE = 0.6  # below this an item always needs urgent review
    RECENT_FAIL_SUCCESS_RATE = 0.8  # below this with a failure in the last week
    RECENT_FAIL_DAYS = 7
    WEAK_KIND_THRESHOLD = 0.7

    @classmethod
    def ensure_dirs(cls):
        """Create all necessary directories."""
        cls.DATA_DIR.mkdir(exist_ok=True, parents=True)
        cls.DECK_PATH.parent.mkdir(exist_ok=True, parents=True)
