from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional

import httpx

from feelflick.core.config import settings
from feelflick.core.constants import (
    OMDB_MAX_RETRIES,
    OMDB_QUOTA_WARNING_RATIO,
    OMDB_RETRY_PAUSE_SECONDS,
)
from feelflick.core.exceptions import ConfigurationError, OMDbError, QuotaExceededError
from feelflick.recommender.quality import ExternalRatings, parse_leading_int

logger = logging.getLogger(__name__)

_NOT_AVAILABLE = "N/A"


def _find_rating(payload: dict[str, Any], source: str) -> Optional[str]:
    ratings = payload.get("Ratings")
    if not isinstance(ratings, list):
        return None
    for r in ratings:
        if isinstance(r, dict) and r.get("Source") == source and r.get("Value"):
            return str(r["Value"])
    return None


def parse_omdb_ratings(payload: dict[str, Any]) -> ExternalRatings:
    """
    Pull IMDb / Rotten Tomatoes / Metacritic out of an OMDb title payload.

    "N/A" values are treated as missing. Rotten Tomatoes is kept as the raw
    "85%" string; Metacritic "74/100" becomes 74.
    """
    imdb_rating: float | None = None
    raw_rating = payload.get("imdbRating")
    if raw_rating and raw_rating != _NOT_AVAILABLE:
        try:
            imdb_rating = float(raw_rating)
        except (TypeError, ValueError):
            imdb_rating = None

    imdb_votes: int | None = None
    raw_votes = payload.get("imdbVotes")
    if raw_votes and raw_votes != _NOT_AVAILABLE:
        try:
            imdb_votes = int(str(raw_votes).replace(",", ""))
        except ValueError:
            imdb_votes = None

    meta = _find_rating(payload, "Metacritic")

    return ExternalRatings(
        imdb_rating=imdb_rating,
        imdb_votes=imdb_votes,
        rt_rating=_find_rating(payload, "Rotten Tomatoes"),
        metacritic_score=parse_leading_int(meta) if meta else None,
    )


class OMDbClient:
    """
    OMDb API client with a fixed request spacing and a daily request quota.

    Network timeouts / resets are retried a couple of times; everything else is
    raised as OMDbError.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        daily_quota: int | None = None,
        request_delay: float | None = None,
        retry_pause: float = OMDB_RETRY_PAUSE_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.omdb_api_key
        if not self.api_key:
            raise ConfigurationError("OMDB_API_KEY is not set. Put it into .env")

        self.daily_quota = daily_quota if daily_quota is not None else settings.omdb_daily_quota
        self.request_delay = request_delay if request_delay is not None else settings.omdb_request_delay_secs
        self.retry_pause = retry_pause
        self.request_count = 0

        self._clock = clock
        self._last_request_at: float | None = None
        self._quota_warning_shown = False
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.omdb_base_url,
            timeout=httpx.Timeout(settings.http_timeout_secs),
            transport=transport,
        )

    async def __aenter__(self) -> "OMDbClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def quota_remaining(self) -> int:
        return max(self.daily_quota - self.request_count, 0)

    def reset_request_count(self) -> None:
        self.request_count = 0
        self._quota_warning_shown = False

    async def _rate_limit(self) -> None:
        if self._last_request_at is not None:
            elapsed = self._clock() - self._last_request_at
            if elapsed < self.request_delay:
                await asyncio.sleep(self.request_delay - elapsed)
        self._last_request_at = self._clock()

    def _check_quota(self) -> None:
        if self.request_count >= self.daily_quota:
            raise QuotaExceededError(self.request_count, self.daily_quota)
        if not self._quota_warning_shown and self.request_count >= self.daily_quota * OMDB_QUOTA_WARNING_RATIO:
            logger.warning("OMDb quota warning: %d/%d used", self.request_count, self.daily_quota)
            self._quota_warning_shown = True

    async def get_title(self, imdb_id: str) -> dict[str, Any]:
        """Raw OMDb payload for an IMDb id (tt1234567)."""
        self._check_quota()

        params = {"apikey": self.api_key, "i": imdb_id, "plot": "short"}
        attempt = 0
        while True:
            await self._rate_limit()
            try:
                resp = await self._client.get("", params=params)
                break
            except (httpx.TimeoutException, httpx.RemoteProtocolError, httpx.ConnectError) as e:
                if attempt >= OMDB_MAX_RETRIES:
                    raise OMDbError(f"OMDb request failed for {imdb_id}: {e!r}") from e
                attempt += 1
                logger.warning("Retry %d/%d for %s: %r", attempt, OMDB_MAX_RETRIES, imdb_id, e)
                await asyncio.sleep(self.retry_pause)
            except httpx.HTTPError as e:
                raise OMDbError(f"OMDb request failed for {imdb_id}: {e!r}") from e

        self.request_count += 1

        if resp.status_code == 401:
            raise OMDbError("OMDb 401 Unauthorized: check OMDB_API_KEY")
        if resp.status_code >= 400:
            raise OMDbError(f"OMDb HTTP {resp.status_code}: {resp.text[:300]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise OMDbError("OMDb invalid JSON response") from e

        if not isinstance(data, dict):
            raise OMDbError("OMDb response is not a JSON object")
        if data.get("Response") == "False":
            raise OMDbError(f"OMDb error: {data.get('Error') or 'unknown'}")

        return data

    async def get_ratings(self, imdb_id: str) -> ExternalRatings:
        return parse_omdb_ratings(await self.get_title(imdb_id))
