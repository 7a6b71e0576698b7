"""Pipeline orchestration — runs a batch of rows through the row processor in order."""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from replyrater import config
from replyrater.events import EventSink, Reporter
from replyrater.llm import RatingJudge
from replyrater.models import UNKNOWN, InputRow, RatingResult
from replyrater.processor import RowProcessor
from replyrater.tweet_client import TweetResolver

logger = logging.getLogger(__name__)

CANCELLED_ERROR = "Batch cancelled before this row was processed"

RowLike = InputRow | Mapping[str, Any]


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


class BatchOrchestrator:
    """Sequential batch runner with a fixed pause between rows.

    Buffered and streaming callers share this one code path: streaming just
    passes ``on_event``.
    """

    def __init__(self, processor: RowProcessor, pause_seconds: float = 0.5) -> None:
        self._processor = processor
        self._pause = pause_seconds

    def run(
        self,
        rows: Sequence[RowLike],
        on_event: EventSink | None = None,
        cancel: threading.Event | None = None,
    ) -> list[RatingResult]:
        """Process *rows* in order; always returns one result per row."""
        report = Reporter(on_event, logger)
        stop = cancel or threading.Event()
        total = len(rows)
        results: list[RatingResult] = []

        for i, row in enumerate(rows):
            if stop.is_set():
                report.warn("⚠ Batch cancelled — skipping %d remaining row(s)", total - i)
                results.extend(_cancelled(r) for r in rows[i:])
                break

            report.info("📊 Processing tweet %d/%d: %s", i + 1, total, _tweet_id_of(row))
            results.append(self._processor.process(row, i, total, report))

            # Pace the tweet API; the wait ends early on cancellation.
            if i < total - 1 and self._pause > 0:
                stop.wait(self._pause)

        rated = sum(1 for r in results if r.rating is not None)
        report.info("✅ Processing complete. %d/%d tweets rated.", rated, total)
        return results


def _tweet_id_of(row: RowLike) -> str:
    if isinstance(row, InputRow):
        return row.tweet_id or UNKNOWN
    if isinstance(row, Mapping):
        value = row.get("tweetId", row.get("tweet_id"))
        return str(value) if value else UNKNOWN
    return UNKNOWN


def _cancelled(row: RowLike) -> RatingResult:
    reply_id = UNKNOWN
    if isinstance(row, InputRow):
        reply_id = row.reply_id or UNKNOWN
    elif isinstance(row, Mapping):
        value = row.get("replyId", row.get("reply_id"))
        reply_id = str(value) if value else UNKNOWN
    return RatingResult(reply_id=reply_id, tweet_id=_tweet_id_of(row), error=CANCELLED_ERROR)


def build_pipeline() -> BatchOrchestrator:
    """Wire a fresh resolver (and tweet cache) and judge from configuration."""
    resolver = TweetResolver(
        base_url=config.TWITTER_API_URL,
        api_key=config.TWITTER_API_KEY,
        timeout=config.TWITTER_TIMEOUT_SECONDS,
    )
    judge = RatingJudge(
        api_key=config.OPENAI_API_KEY,
        model=config.OPENAI_MODEL,
        max_tokens=config.RATING_MAX_TOKENS,
    )
    return BatchOrchestrator(RowProcessor(resolver, judge), config.ROW_PAUSE_SECONDS)


def run_batch(
    rows: Sequence[RowLike],
    on_event: EventSink | None = None,
    cancel: threading.Event | None = None,
) -> list[RatingResult]:
    """Rate *rows* with a pipeline built from configuration."""
    return build_pipeline().run(rows, on_event=on_event, cancel=cancel)
