"""Domain models used across the pipeline."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

UNKNOWN = "unknown"

Level = Literal["info", "warn", "error"]


class _WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python; either is accepted on input
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class InputRow(_WireModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    reply_id: str | None = None
    tweet_id: str | None = None
    reply_text: str | None = None
    original_tweet_text: str | None = None
    url: str | None = None
    username: str | None = None

    def has_required_ids(self) -> bool:
        return bool(self.reply_id) and bool(self.tweet_id)


class ResolvedTweet(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    in_reply_to_id: str | None = None


class RatingResult(_WireModel):
    reply_id: str
    tweet_id: str
    original_tweet_text: str = ""
    reply_text: str = ""
    rating: int | None = Field(default=None, ge=1, le=10)
    error: str | None = None
    reply_url: str = ""

    @model_validator(mode="after")
    def _rating_xor_error(self) -> RatingResult:
        if (self.rating is None) == (self.error is None):
            raise ValueError("exactly one of rating or error must be set")
        return self


class ProgressEvent(BaseModel):
    level: Level = "info"
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def render(self) -> str:
        """Log-line form: ``[WARN] …`` / ``[ERROR] …`` / bare message for info."""
        if self.level == "info":
            return self.message
        return f"[{self.level.upper()}] {self.message}"
