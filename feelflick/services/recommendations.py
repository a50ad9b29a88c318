from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from feelflick.cache.request_cache import RequestCache
from feelflick.core.constants import (
    CACHE_TYPE_MOOD,
    DEFAULT_RECOMMENDATION_LIMIT,
    DEFAULT_SLIDER_VALUE,
    MOOD_RECOMMENDATIONS_RPC,
    TIME_OF_DAY_BUCKETS,
    TIME_OF_DAY_LATE,
)
from feelflick.core.exceptions import DatastoreError, RecommendationError
from feelflick.core.validation import validate_count, validate_slider, validate_user_id
from feelflick.db.repositories.mood_sessions import close_mood_session, insert_mood_session
from feelflick.integrations.supabase import SupabaseClient

logger = logging.getLogger(__name__)


def time_of_day(hour: int) -> str:
    for upper, label in TIME_OF_DAY_BUCKETS:
        if hour < upper:
            return label
    return TIME_OF_DAY_LATE


def day_of_week(moment: datetime) -> str:
    return moment.strftime("%A")


class RecommendationService:
    """
    Mood recommendations served through the shared RequestCache.

    The scoring itself happens server-side in the get_mood_recommendations RPC;
    this class only shapes the call, caches it per user, and drops the user's
    cache lines when their history changes.
    """

    def __init__(self, client: SupabaseClient, cache: RequestCache) -> None:
        self.client = client
        self.cache = cache

    async def get_mood_recommendations(
        self,
        user_id: str,
        *,
        mood_id: int,
        viewing_context_id: int,
        experience_type_id: int,
        energy_level: int = DEFAULT_SLIDER_VALUE,
        intensity_openness: int = DEFAULT_SLIDER_VALUE,
        limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ) -> list[dict[str, Any]]:
        user_id = validate_user_id(user_id)
        params = {
            "mood_id": mood_id,
            "viewing_context_id": viewing_context_id,
            "experience_type_id": experience_type_id,
            "energy_level": validate_slider("energy_level", energy_level),
            "intensity_openness": validate_slider("intensity_openness", intensity_openness),
            "limit": validate_count(limit),
        }
        key = self.cache.key(CACHE_TYPE_MOOD, user_id, params)

        async def fetch() -> list[dict[str, Any]]:
            try:
                rows = await self.client.rpc(MOOD_RECOMMENDATIONS_RPC, {**params, "user_id": user_id})
            except DatastoreError as e:
                raise RecommendationError(f"{MOOD_RECOMMENDATIONS_RPC} failed: {e}") from e
            if rows is None:
                return []
            if not isinstance(rows, list):
                raise RecommendationError(f"{MOOD_RECOMMENDATIONS_RPC} returned {type(rows).__name__}, expected list")
            logger.info("Fetched %d mood recommendations for user %s", len(rows), user_id)
            return rows

        return await self.cache.get_or_fetch(key, fetch)

    def on_history_changed(self, user_id: str) -> int:
        """Call after a watch / rating / feedback write for this user."""
        return self.cache.invalidate_user(validate_user_id(user_id))

    async def create_mood_session(
        self,
        user_id: str,
        *,
        mood_id: int,
        viewing_context_id: int,
        experience_type_id: int,
        energy_level: int = DEFAULT_SLIDER_VALUE,
        intensity_openness: int = DEFAULT_SLIDER_VALUE,
        now: Optional[datetime] = None,
    ) -> int:
        moment = now or datetime.now()
        return await insert_mood_session(
            self.client,
            {
                "user_id": validate_user_id(user_id),
                "mood_id": mood_id,
                "viewing_context_id": viewing_context_id,
                "experience_type_id": experience_type_id,
                "energy_level": validate_slider("energy_level", energy_level),
                "intensity_openness": validate_slider("intensity_openness", intensity_openness),
                "time_of_day": time_of_day(moment.hour),
                "day_of_week": day_of_week(moment),
            },
        )

    async def end_mood_session(self, session_id: int, now: Optional[datetime] = None) -> bool:
        return await close_mood_session(self.client, session_id, now or datetime.now(timezone.utc))
