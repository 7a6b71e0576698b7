"""Tweet lookup client with a per-run identifier cache (read-only)."""

from __future__ import annotations

import logging
from typing import Any

import requests

from replyrater.events import Reporter
from replyrater.models import ResolvedTweet

logger = logging.getLogger(__name__)

# Upstream payloads spell the parent id either way, in camel or snake case.
_PARENT_ID_FIELDS = (
    "inReplyToStatusId",
    "in_reply_to_status_id",
    "inReplyToId",
    "in_reply_to_id",
)

_STATUS_HINTS: dict[int, str] = {
    401: "Authentication failed - check your TWITTER_API_KEY",
    404: "Tweet not found - ID may be invalid or deleted",
    429: "Rate limit exceeded",
}


class ResolverError(Exception):
    """Raised when a tweet lookup cannot be completed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TweetCache:
    """Unbounded id → tweet map; lives as long as its resolver."""

    def __init__(self) -> None:
        self._tweets: dict[str, ResolvedTweet] = {}

    def get(self, tweet_id: str) -> ResolvedTweet | None:
        return self._tweets.get(tweet_id)

    def put(self, tweet_id: str, tweet: ResolvedTweet) -> None:
        self._tweets[tweet_id] = tweet

    def __contains__(self, tweet_id: object) -> bool:
        return tweet_id in self._tweets

    def __len__(self) -> int:
        return len(self._tweets)


class TweetResolver:
    """Thin wrapper around ``GET {base_url}?tweet_ids=…``."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        cache: TweetCache | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._timeout = timeout
        self.cache = cache if cache is not None else TweetCache()
        self._session = session or requests.Session()
        self._session.headers.update({"X-API-Key": api_key})

        if not base_url:
            logger.warning("TWITTER_API_URL is not configured; every lookup will fail.")
        if not api_key:
            logger.warning("TWITTER_API_KEY is not configured; every lookup will fail.")

    # ── public ──────────────────────────────────────────────────────────
    def resolve(self, tweet_id: str, reporter: Reporter | None = None) -> ResolvedTweet | None:
        """Return the tweet for *tweet_id*, or ``None`` when the API has no match.

        Raises :class:`ResolverError` on transport, status or configuration
        failures. Only successful lookups are cached.
        """
        report = (reporter or Reporter()).bind(logger)

        cached = self.cache.get(tweet_id)
        if cached is not None:
            report.info("✓ Using cached tweet: %s", tweet_id)
            return cached

        report.info("→ Fetching tweet: %s", tweet_id)
        data = self._get(tweet_id, report)

        raw = self._first_tweet(data)
        if raw is None:
            report.warn("⚠ No tweet data found for ID: %s", tweet_id)
            return None

        tweet = self._normalize(raw, tweet_id)
        self.cache.put(tweet_id, tweet)
        report.info('✓ Fetched tweet %s: "%s..."', tweet_id, tweet.text[:50])
        return tweet

    # ── private ─────────────────────────────────────────────────────────
    def _get(self, tweet_id: str, report: Reporter) -> dict[str, Any]:
        for name, value in (("TWITTER_API_URL", self._base_url), ("TWITTER_API_KEY", self._api_key)):
            if not value:
                msg = f"{name} is not configured"
                report.error("✗ Error fetching tweet %s: %s", tweet_id, msg)
                raise ResolverError(msg)

        try:
            resp = self._session.get(
                self._base_url,
                params={"tweet_ids": tweet_id},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            report.error("✗ Error fetching tweet %s: %s", tweet_id, exc)
            raise ResolverError(str(exc)) from exc

        report.info("← Tweet response status: %d", resp.status_code)
        if not 200 <= resp.status_code < 300:
            report.error("✗ Twitter API Error fetching tweet %s:", tweet_id)
            report.error("  Status: %d", resp.status_code)
            report.error("  Response: %s", resp.text[:500])
            hint = _STATUS_HINTS.get(resp.status_code)
            if hint:
                report.error("  %s", hint)
            raise ResolverError(
                f"Twitter API returned {resp.status_code}: {resp.text[:500]}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()  # type: ignore[no-any-return]
        except ValueError as exc:
            report.error("✗ Undecodable response for tweet %s", tweet_id)
            raise ResolverError(
                f"Invalid JSON from Twitter API: {exc}", status_code=resp.status_code
            ) from exc

    @staticmethod
    def _first_tweet(data: Any) -> dict[str, Any] | None:
        if not isinstance(data, dict):
            return None
        tweets = data.get("tweets") or data.get("data") or []
        if isinstance(tweets, dict):
            return tweets
        if isinstance(tweets, list) and tweets and isinstance(tweets[0], dict):
            return tweets[0]
        return None

    @staticmethod
    def _normalize(raw: dict[str, Any], requested_id: str) -> ResolvedTweet:
        parent = next((raw[f] for f in _PARENT_ID_FIELDS if raw.get(f)), None)
        return ResolvedTweet(
            id=str(raw.get("id") or requested_id),
            text=raw.get("text") or "",
            in_reply_to_id=str(parent) if parent is not None else None,
        )
