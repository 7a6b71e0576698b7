"""Diagnostic sink shared by the resolver, judge, processor and orchestrator.

Every message goes to the standard ``logging`` logger of the emitting module
and, when a caller supplied one, to an ``on_event`` callback as a
:class:`ProgressEvent`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from replyrater.models import Level, ProgressEvent

EventSink = Callable[[ProgressEvent], None]

_LOG_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class Reporter:
    """Format, log and forward diagnostics for one batch."""

    def __init__(
        self,
        sink: EventSink | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sink = sink
        self._logger = logger or logging.getLogger("replyrater")

    def bind(self, logger: logging.Logger) -> Reporter:
        """Same sink, different logger (so records carry the caller's name)."""
        return Reporter(self._sink, logger)

    def info(self, msg: str, *args: object) -> None:
        self._emit("info", msg, args)

    def warn(self, msg: str, *args: object) -> None:
        self._emit("warn", msg, args)

    def error(self, msg: str, *args: object) -> None:
        self._emit("error", msg, args)

    def _emit(self, level: Level, msg: str, args: tuple[object, ...]) -> None:
        self._logger.log(_LOG_LEVELS[level], msg, *args)
        if self._sink is None:
            return
        text = msg % args if args else msg
        try:
            self._sink(ProgressEvent(level=level, message=text))
        except Exception:
            self._logger.exception("Event sink failed; dropping event: %s", text)
