"""Centralised configuration loaded from environment variables and dotenv."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Tweet lookup API ───────────────────────────────────────────────────────
TWITTER_API_URL: str = os.getenv("TWITTER_API_URL", "")
TWITTER_API_KEY: str = os.getenv("TWITTER_API_KEY", "")
TWITTER_TIMEOUT_SECONDS: float = float(os.getenv("TWITTER_TIMEOUT_SECONDS", "10"))

# ── LLM ────────────────────────────────────────────────────────────────────
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
RATING_MAX_TOKENS: int = int(os.getenv("RATING_MAX_TOKENS", "10"))

# ── Batch pacing ───────────────────────────────────────────────────────────
ROW_PAUSE_SECONDS: float = float(os.getenv("ROW_PAUSE_SECONDS", "0.5"))


def missing_settings() -> list[str]:
    """Return the names of required environment variables that are unset."""
    required = {
        "TWITTER_API_URL": TWITTER_API_URL,
        "TWITTER_API_KEY": TWITTER_API_KEY,
        "OPENAI_API_KEY": OPENAI_API_KEY,
    }
    return [name for name, value in required.items() if not value]


def warn_if_unconfigured() -> None:
    for name in missing_settings():
        logger.warning("%s is not configured", name)
