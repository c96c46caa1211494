"""
TaskFlow Calendar — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from taskflow/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # SQLite key-value store
    DATABASE_PATH: str = "data/taskflow.db"

    # Calendar grid: 0 = Monday ... 6 = Sunday
    WEEK_START: int = 6

    # Verification codes
    VERIFICATION_CODE_TTL_SECONDS: int = 300
    RESEND_COOLDOWN_SECONDS: int = 600
    REQUIRE_VERIFICATION: bool = True
    SHOW_CODES_IN_DEV: bool = False

    # Simulated SMS transport
    SMS_SEND_DELAY_SECONDS: float = 1.0
    INVITE_SEND_DELAY_SECONDS: float = 1.5
    APP_BASE_URL: str = "https://taskflow.local"

    # Event form
    REJECT_INVERTED_TIMES: bool = True

    @field_validator("WEEK_START", mode="before")
    @classmethod
    def parse_week_start(cls, v: str | int) -> int:
        if isinstance(v, int):
            return v
        name = v.strip().lower()
        if name.isdigit():
            return int(name)
        if name not in _WEEKDAYS:
            raise ValueError(f"Unknown WEEK_START: {v!r}")
        return _WEEKDAYS.index(name)

    @field_validator("REQUIRE_VERIFICATION", "SHOW_CODES_IN_DEV", "REJECT_INVERTED_TIMES", mode="before")
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return v.strip().lower() in ("1", "true", "yes", "on")


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/taskflow.db"),
        WEEK_START=os.getenv("WEEK_START", "sunday"),
        VERIFICATION_CODE_TTL_SECONDS=os.getenv("VERIFICATION_CODE_TTL_SECONDS", "300"),
        RESEND_COOLDOWN_SECONDS=os.getenv("RESEND_COOLDOWN_SECONDS", "600"),
        REQUIRE_VERIFICATION=os.getenv("REQUIRE_VERIFICATION", "true"),
        SHOW_CODES_IN_DEV=os.getenv("SHOW_CODES_IN_DEV", "false"),
        SMS_SEND_DELAY_SECONDS=os.getenv("SMS_SEND_DELAY_SECONDS", "1.0"),
        INVITE_SEND_DELAY_SECONDS=os.getenv("INVITE_SEND_DELAY_SECONDS", "1.5"),
        APP_BASE_URL=os.getenv("APP_BASE_URL", "https://taskflow.local"),
        REJECT_INVERTED_TIMES=os.getenv("REJECT_INVERTED_TIMES", "true"),
    )


# Module-level settings, imported elsewhere as:
#   from taskflow.config import settings
settings = _load_settings()
