"""CSV ingest and CSV / JSON export of rating results."""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Iterable

from replyrater.models import InputRow, RatingResult

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "replyId",
    "tweetId",
    "originalTweetText",
    "replyText",
    "rating",
    "replyUrl",
]


def parse_csv(text: str) -> list[InputRow]:
    """Parse an uploaded CSV (header row first) into input rows.

    Quoted values may contain commas, doubled quotes and newlines. Blank lines
    are skipped and every cell is stripped. A file without at least one data
    row yields ``[]``.
    """
    reader = csv.reader(io.StringIO(text.strip()))
    header = next(reader, None)
    if not header:
        return []
    columns = [h.strip() for h in header]

    rows: list[InputRow] = []
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        record = {
            col: values[i].strip() if i < len(values) else None
            for i, col in enumerate(columns)
            if col
        }
        rows.append(InputRow.model_validate(record))

    logger.info("Parsed %d rows (%d columns)", len(rows), len(columns))
    return rows


def export_csv(results: Iterable[RatingResult]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for r in results:
        writer.writerow(
            [
                r.reply_id,
                r.tweet_id,
                r.original_tweet_text,
                r.reply_text,
                "" if r.rating is None else r.rating,
                r.reply_url,
            ]
        )
    return buf.getvalue()


def export_json(results: Iterable[RatingResult]) -> str:
    return json.dumps([r.to_wire() for r in results], indent=2, ensure_ascii=False)
