"""LLM-powered judge — scores a reply against the tweet it answers."""

from __future__ import annotations

import logging
import re
from typing import Any

from openai import OpenAI

from replyrater.events import Reporter

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 10

_DIGITS_RE = re.compile(r"\d+")

# ── Prompt used for every rating call ──────────────────────────────────────
_RATING_PROMPT = """\
You are rating Twitter replies based on how good they are relative to the original tweet.

Original Tweet: "{original}"
Reply: "{reply}"

Score the reply using this weighted rubric:
- Relevance to the original tweet (30%)
- Insight and substance: does it add information, a perspective or wit (30%)
- Constructiveness and tone (20%)
- Engagement value: would readers want to respond to or share it (20%)

Combine the weighted criteria into a single overall score.
Output only a single number between 1 and 10 representing the quality of the reply.
Respond with just the number."""


def build_prompt(original_text: str, reply_text: str) -> str:
    return _RATING_PROMPT.format(original=original_text, reply=reply_text)


def parse_rating(raw: str | None) -> int | None:
    """Return the first integer in *raw*, clamped to 1–10, or ``None``."""
    if not raw:
        return None
    match = _DIGITS_RE.search(raw)
    if match is None:
        return None
    return min(max(int(match.group()), MIN_RATING), MAX_RATING)


class RatingJudge:
    """Chat-completion judge. Ships with OpenAI; any client with the same
    ``chat.completions.create`` surface can be injected."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        max_tokens: int = 10,
        client: Any = None,
    ) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._client: Any = client

        if self._client is not None:
            return
        if not api_key:
            logger.warning("OPENAI_API_KEY not set — replies will not be rated.")
            return

        self._client = OpenAI(api_key=api_key)

    # ── public ──────────────────────────────────────────────────────────

    def rate(
        self,
        original_text: str,
        reply_text: str,
        reporter: Reporter | None = None,
    ) -> int | None:
        """Score *reply_text* against *original_text*; ``None`` on any failure."""
        report = (reporter or Reporter()).bind(logger)

        if not original_text or not reply_text:
            report.warn("⚠ Missing text for rating: original or reply text is empty")
            return None
        if self._client is None:
            report.warn("⚠ No LLM client configured — skipping rating")
            return None

        try:
            report.info("  → Sending request to OpenAI...")
            content = self._complete(build_prompt(original_text, reply_text))
        except Exception as exc:
            report.error("✗ Error getting rating from LLM: %s", exc)
            return None

        rating = parse_rating(content)
        if rating is None:
            report.warn('⚠ Could not parse rating from response: "%s"', content)
            return None

        report.info("  ← Rating: %d", rating)
        return rating

    # ── private ─────────────────────────────────────────────────────────

    def _complete(self, prompt: str) -> str:
        resp = self._client.chat.completions.create(
            model=self._model,
            max_tokens=self._max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""
