"""Unit tests for CSV ingest and result export."""

import csv
import io
import json

from replyrater.csv_io import EXPORT_COLUMNS, export_csv, export_json, parse_csv
from replyrater.models import RatingResult


def _results() -> list[RatingResult]:
    return [
        RatingResult(
            reply_id="r1",
            tweet_id="t1",
            original_tweet_text='He said "hi", then left',
            reply_text="line one\nline two",
            rating=7,
            reply_url="https://x.com/i/status/t1",
        ),
        RatingResult(reply_id="r2", tweet_id="unknown", error="Missing required fields"),
    ]


class TestParseCsv:
    def test_rows_and_extras(self) -> None:
        text = (
            "replyId,tweetId,replyText,platform\n"
            'r1,t1,"hello, world",x\n'
            "\n"
            'r2,t2,"say ""hi""",x\n'
        )
        rows = parse_csv(text)

        assert [r.reply_id for r in rows] == ["r1", "r2"]
        assert rows[0].reply_text == "hello, world"
        assert rows[1].reply_text == 'say "hi"'
        assert rows[0].model_dump(by_alias=True)["platform"] == "x"

    def test_cells_are_stripped(self) -> None:
        rows = parse_csv(" replyId , tweetId \n r1 , t1 \n")
        assert rows[0].reply_id == "r1"
        assert rows[0].tweet_id == "t1"

    def test_short_row_leaves_missing_columns_unset(self) -> None:
        rows = parse_csv("replyId,tweetId\nr1\n")
        assert rows[0].tweet_id is None
        assert not rows[0].has_required_ids()

    def test_header_only(self) -> None:
        assert parse_csv("replyId,tweetId\n") == []

    def test_empty(self) -> None:
        assert parse_csv("") == []


class TestExport:
    def test_csv_columns_and_escaping(self) -> None:
        out = export_csv(_results())
        parsed = list(csv.reader(io.StringIO(out)))

        assert parsed[0] == EXPORT_COLUMNS
        assert parsed[1][2] == 'He said "hi", then left'
        assert parsed[1][3] == "line one\nline two"
        assert parsed[1][4] == "7"
        assert parsed[2][4] == ""

    def test_json_uses_wire_names(self) -> None:
        data = json.loads(export_json(_results()))
        assert data[0]["replyId"] == "r1"
        assert data[0]["replyUrl"] == "https://x.com/i/status/t1"
        assert data[1]["rating"] is None
        assert data[1]["error"] == "Missing required fields"
