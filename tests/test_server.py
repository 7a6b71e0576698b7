"""Route tests for the HTTP surface."""

from __future__ import annotations

import json
import threading
import time
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from replyrater.llm import RatingJudge
from replyrater.models import RatingResult, ResolvedTweet
from replyrater.pipeline import CANCELLED_ERROR, BatchOrchestrator
from replyrater.processor import RowProcessor
from replyrater.server import create_app, stream_batch

_TWEETS = {
    "t0": ResolvedTweet(id="t0", text="hello"),
    "t1": ResolvedTweet(id="t1", text="world", in_reply_to_id="t0"),
}

_ROWS = [
    {"replyId": "r1", "tweetId": "t1"},
    {"replyId": "r2", "tweetId": ""},
]


def _pipeline(pause: float = 0.0) -> BatchOrchestrator:
    resolver = MagicMock()
    resolver.resolve.side_effect = lambda tweet_id, reporter=None: _TWEETS.get(tweet_id)
    client = MagicMock()
    choice = MagicMock()
    choice.message.content = "8"
    client.chat.completions.create.return_value = MagicMock(choices=[choice])
    judge = RatingJudge(api_key="", client=client)
    return BatchOrchestrator(RowProcessor(resolver, judge), pause_seconds=pause)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(create_app(_pipeline))


def _sse_events(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


class TestHealth:
    def test_ok(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok"}


class TestUpload:
    def test_parses_csv(self, client: TestClient) -> None:
        csv_text = "replyId,tweetId,replyText\nr1,t1,hi\nr2,t2,yo\n"
        resp = client.post("/api/upload", files={"file": ("replies.csv", csv_text.encode(), "text/csv")})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["rowCount"] == 2
        assert body["data"][0]["replyId"] == "r1"
        assert body["data"][1]["replyText"] == "yo"

    def test_no_file(self, client: TestClient) -> None:
        resp = client.post("/api/upload")
        assert resp.status_code == 400
        assert resp.json()["error"] == "No file provided"

    def test_empty_csv(self, client: TestClient) -> None:
        resp = client.post("/api/upload", files={"file": ("e.csv", b"replyId,tweetId\n", "text/csv")})
        assert resp.status_code == 400
        assert resp.json()["error"] == "CSV file is empty"


class TestProcess:
    def test_buffered_results(self, client: TestClient) -> None:
        resp = client.post("/api/process", json={"data": _ROWS})

        assert resp.status_code == 200
        results = resp.json()["results"]
        assert [r["rating"] for r in results] == [8, None]
        assert results[1]["tweetId"] == "unknown"

    @pytest.mark.parametrize("payload", [{}, {"data": "nope"}, [1, 2]])
    def test_invalid_body(self, client: TestClient, payload: object) -> None:
        resp = client.post("/api/process", json=payload)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid data format"


class TestProcessStream:
    def test_event_sequence(self, client: TestClient) -> None:
        resp = client.post("/api/process-stream", json={"data": _ROWS})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        events = _sse_events(resp.text)

        assert events[0]["type"] == "start"
        assert events[-1]["type"] == "complete"
        logs = [e for e in events if e["type"] == "log"]
        assert sum("Processing tweet" in e["message"] for e in logs) == 2
        assert any(e["level"] == "error" and e["message"].startswith("[ERROR]") for e in logs)
        assert all("timestamp" in e for e in logs)

    def test_stream_result_matches_buffered(self, client: TestClient) -> None:
        buffered = client.post("/api/process", json={"data": _ROWS}).json()["results"]
        streamed = _sse_events(client.post("/api/process-stream", json={"data": _ROWS}).text)
        assert streamed[-1]["results"] == buffered

    def test_invalid_body(self, client: TestClient) -> None:
        resp = client.post("/api/process-stream", json={"rows": []})
        assert resp.status_code == 400


class _RecordingPipeline:
    """Wraps a pipeline and keeps what the worker thread returned."""

    def __init__(self, inner: BatchOrchestrator) -> None:
        self._inner = inner
        self.results: list[RatingResult] = []
        self.done = threading.Event()

    def run(self, rows: list[Any], **kwargs: Any) -> list[RatingResult]:
        try:
            self.results = self._inner.run(rows, **kwargs)
            return self.results
        finally:
            self.done.set()


class TestStreamBatch:
    def test_disconnect_cancels_remaining_rows(self) -> None:
        pipeline = _RecordingPipeline(_pipeline(pause=5.0))
        rows = [{"replyId": f"r{i}", "tweetId": "t1"} for i in range(3)]
        frames = stream_batch(pipeline, rows)  # type: ignore[arg-type]

        started = time.monotonic()
        assert json.loads(next(frames)[len("data: "):])["type"] == "start"
        frames.close()

        assert pipeline.done.wait(2.0)
        assert time.monotonic() - started < 2.0
        assert len(pipeline.results) == 3
        assert [r.error for r in pipeline.results[1:]] == [CANCELLED_ERROR] * 2

    def test_worker_failure_ends_with_error_frame(self) -> None:
        pipeline = MagicMock()
        pipeline.run.side_effect = RuntimeError("worker blew up")

        events = _sse_events("".join(stream_batch(pipeline, _ROWS)))

        assert events[0]["type"] == "start"
        assert events[-1] == {"type": "error", "error": "worker blew up"}
