"""Per-row rating: validate → fetch reply → fetch original → judge → result."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from replyrater.events import Reporter
from replyrater.llm import RatingJudge
from replyrater.models import UNKNOWN, InputRow, RatingResult
from replyrater.tweet_client import ResolverError, TweetResolver

logger = logging.getLogger(__name__)

MISSING_FIELDS_ERROR = "Missing required fields (replyId and tweetId)"
FETCH_REPLY_ERROR = "Could not fetch reply tweet from Twitter API"
RATING_ERROR = "Could not complete rating"


def reply_url(row: InputRow) -> str:
    """Link to the reply on X: the row's own ``url`` wins, then the
    username-qualified permalink, then the anonymous ``/i/status`` form."""
    if row.url:
        return row.url
    if not row.tweet_id:
        return ""
    if row.username:
        return f"https://x.com/{row.username.lstrip('@')}/status/{row.tweet_id}"
    return f"https://x.com/i/status/{row.tweet_id}"


@dataclass
class _Draft:
    """Whatever is known about a row so far; finished into a RatingResult."""

    reply_id: str = UNKNOWN
    tweet_id: str = UNKNOWN
    original_tweet_text: str = ""
    reply_text: str = ""
    reply_url: str = ""

    def finish(self, rating: int | None = None, error: str | None = None) -> RatingResult:
        return RatingResult(
            reply_id=self.reply_id,
            tweet_id=self.tweet_id,
            original_tweet_text=self.original_tweet_text,
            reply_text=self.reply_text,
            rating=rating,
            error=error,
            reply_url=self.reply_url,
        )

    def fail(self, error: str) -> RatingResult:
        return self.finish(rating=None, error=error)


class RowProcessor:
    """Resolve and rate one row. Never raises: failures become ``error``."""

    def __init__(self, resolver: TweetResolver, judge: RatingJudge) -> None:
        self._resolver = resolver
        self._judge = judge

    def process(
        self,
        row: InputRow | Mapping[str, Any],
        index: int,
        total: int,
        reporter: Reporter | None = None,
    ) -> RatingResult:
        report = (reporter or Reporter()).bind(logger)
        draft = _Draft()
        try:
            if not isinstance(row, InputRow):
                row = InputRow.model_validate(row)
            draft.reply_id = row.reply_id or UNKNOWN
            draft.tweet_id = row.tweet_id or UNKNOWN
            draft.original_tweet_text = row.original_tweet_text or ""
            draft.reply_text = row.reply_text or ""
            draft.reply_url = reply_url(row)
            return self._process(row, draft, index, total, report)
        except Exception as exc:
            report.error("✗ Error processing tweet %s: %s", draft.tweet_id, exc)
            return draft.fail(str(exc) or type(exc).__name__)

    # ── private ─────────────────────────────────────────────────────────

    def _process(
        self,
        row: InputRow,
        draft: _Draft,
        index: int,
        total: int,
        report: Reporter,
    ) -> RatingResult:
        # 1. Required ids
        if not row.has_required_ids():
            report.error(
                "✗ Row %d/%d: missing required fields (replyId=%r, tweetId=%r)",
                index + 1, total, row.reply_id, row.tweet_id,
            )
            draft.original_tweet_text = ""
            draft.reply_text = ""
            return draft.fail(MISSING_FIELDS_ERROR)

        # 2. Reply tweet
        try:
            reply = self._resolver.resolve(row.tweet_id, report)
        except ResolverError:
            reply = None
        if reply is None:
            draft.original_tweet_text = ""
            draft.reply_text = ""
            return draft.fail(FETCH_REPLY_ERROR)

        # 3. Reply text: row value first, then the API's
        draft.reply_text = row.reply_text or reply.text or ""

        # 4./5. Original tweet via the reply's parent id
        if reply.in_reply_to_id:
            report.info("  → Fetching original tweet: %s", reply.in_reply_to_id)
            try:
                original = self._resolver.resolve(reply.in_reply_to_id, report)
            except ResolverError:
                original = None
            if original is not None:
                draft.original_tweet_text = original.text
                report.info("  ✓ Original tweet fetched")
            else:
                report.warn("  ⚠ Could not fetch original tweet")
        else:
            report.warn("  ⚠ No inReplyToId found - cannot fetch original tweet")

        # 6. Judge only when both sides are present
        rating: int | None = None
        if draft.original_tweet_text and draft.reply_text:
            rating = self._judge.rate(draft.original_tweet_text, draft.reply_text, report)
            report.info("  ✓ Rating: %s", rating)
        else:
            report.warn(
                "  ⚠ Cannot rate - missing text (original: %s, reply: %s)",
                bool(draft.original_tweet_text), bool(draft.reply_text),
            )

        # 7. Exactly one of rating / error
        if rating is None:
            return draft.fail(RATING_ERROR)
        return draft.finish(rating=rating)
