"""FastAPI surface: CSV upload, buffered rating and a server-sent-event stream."""

from __future__ import annotations

import json
import logging
import queue
import threading
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse

from replyrater import config
from replyrater.csv_io import parse_csv
from replyrater.models import ProgressEvent, RatingResult
from replyrater.pipeline import BatchOrchestrator, build_pipeline, setup_logging

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[], BatchOrchestrator]

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    setup_logging()
    config.warn_if_unconfigured()
    return create_app(build_pipeline)


def create_app(pipeline_factory: PipelineFactory = build_pipeline) -> FastAPI:
    """Build the app. A new pipeline (and tweet cache) is made per request."""
    app = FastAPI(title="replyrater")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/upload")
    async def upload(file: UploadFile | None = File(default=None)) -> JSONResponse:
        if file is None:
            return JSONResponse({"error": "No file provided"}, status_code=400)
        try:
            raw = await file.read()
            rows = parse_csv(raw.decode("utf-8-sig"))
        except (UnicodeDecodeError, ValueError) as exc:
            logger.error("Upload error: %s", exc)
            return JSONResponse({"error": "Failed to process file"}, status_code=500)
        if not rows:
            return JSONResponse({"error": "CSV file is empty"}, status_code=400)
        return JSONResponse(
            {
                "success": True,
                "rowCount": len(rows),
                "data": [row.model_dump(by_alias=True) for row in rows],
            }
        )

    @app.post("/api/process")
    async def process(request: Request) -> JSONResponse:
        data = await _request_rows(request)
        if data is None:
            return JSONResponse({"error": "Invalid data format"}, status_code=400)
        try:
            results = await run_in_threadpool(pipeline_factory().run, data)
        except Exception as exc:
            logger.exception("Processing error")
            return JSONResponse(
                {"error": "Failed to process tweets", "details": str(exc)},
                status_code=500,
            )
        return JSONResponse(
            {"success": True, "results": [r.to_wire() for r in results]}
        )

    @app.post("/api/process-stream", response_model=None)
    async def process_stream(request: Request) -> StreamingResponse | JSONResponse:
        data = await _request_rows(request)
        if data is None:
            return JSONResponse({"error": "Invalid data format"}, status_code=400)
        return StreamingResponse(
            stream_batch(pipeline_factory(), data),
            media_type="text/event-stream",
            headers=_SSE_HEADERS,
        )

    return app


async def _request_rows(request: Request) -> list[Any] | None:
    """Return ``body["data"]`` when the body is ``{"data": [...]}``, else ``None``."""
    try:
        body = await request.json()
    except ValueError:
        return None
    data = body.get("data") if isinstance(body, dict) else None
    return data if isinstance(data, list) else None


def sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def log_payload(event: ProgressEvent) -> dict[str, Any]:
    return {
        "type": "log",
        "timestamp": event.timestamp.isoformat(),
        "level": event.level,
        "message": event.render(),
    }


def stream_batch(pipeline: BatchOrchestrator, rows: list[Any]) -> Iterator[str]:
    """Yield SSE frames: ``start``, one ``log`` per event, then ``complete`` or ``error``.

    The batch runs on a worker thread and hands events over a queue. Closing
    the generator (client disconnect) cancels the remaining rows.
    """
    events: queue.Queue[tuple[str, Any]] = queue.Queue()
    cancel = threading.Event()

    def worker() -> None:
        try:
            results = pipeline.run(
                rows, on_event=lambda e: events.put(("log", e)), cancel=cancel
            )
            events.put(("complete", results))
        except Exception as exc:
            logger.exception("Streaming error")
            events.put(("error", exc))

    thread = threading.Thread(target=worker, name="replyrater-batch", daemon=True)
    thread.start()
    try:
        yield sse({"type": "start", "message": "Processing started",
                   "timestamp": datetime.now(UTC).isoformat()})
        while True:
            kind, payload = events.get()
            if kind == "log":
                yield sse(log_payload(payload))
            elif kind == "complete":
                results: list[RatingResult] = payload
                yield sse({"type": "complete", "results": [r.to_wire() for r in results]})
                return
            else:
                yield sse({"type": "error", "error": str(payload)})
                return
    finally:
        cancel.set()
