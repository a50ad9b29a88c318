from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from feelflick.core.constants import TABLE_RATINGS_EXTERNAL
from feelflick.integrations.supabase import SupabaseClient
from feelflick.recommender.quality import ExternalRatings

RATING_COLUMNS = "movie_id,imdb_rating,imdb_votes,rt_rating,metacritic_score"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def get_external_ratings(client: SupabaseClient, movie_id: int) -> Optional[ExternalRatings]:
    query = client.table(TABLE_RATINGS_EXTERNAL).select(RATING_COLUMNS).eq("movie_id", movie_id).limit(1)
    rows = await client.rows(query, f"ratings of movie {movie_id}")
    return ExternalRatings.from_row(rows[0] if rows else None)


async def save_external_ratings(client: SupabaseClient, movie_id: int, ratings: ExternalRatings) -> None:
    row = {"movie_id": movie_id, **ratings.to_row(), "fetched_at": _utcnow_iso(), "fetch_error": None}
    query = client.table(TABLE_RATINGS_EXTERNAL).upsert([row], on_conflict="movie_id")
    await client.execute(query, f"ratings upsert for movie {movie_id}")


async def mark_ratings_unavailable(client: SupabaseClient, movie_id: int, error: str) -> None:
    """
    Store an empty ratings row with the lookup error, so the title is not
    looked up again on the next run.
    """
    row = {"movie_id": movie_id, "fetched_at": _utcnow_iso(), "fetch_error": error[:500]}
    query = client.table(TABLE_RATINGS_EXTERNAL).upsert([row], on_conflict="movie_id")
    await client.execute(query, f"ratings upsert for movie {movie_id}")
