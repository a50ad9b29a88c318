from __future__ import annotations

from typing import Any, Optional

from feelflick.core.constants import TABLE_MOVIES, TABLE_RATINGS_EXTERNAL
from feelflick.integrations.supabase import SupabaseClient
from feelflick.integrations.tmdb import MovieCandidate

SCORING_COLUMNS = "id,tmdb_id,title,vote_average,vote_count,popularity"
RATING_CANDIDATE_COLUMNS = "id,tmdb_id,title,imdb_id,vote_count"


async def fetch_movies_page(
    client: SupabaseClient,
    *,
    after_id: Optional[int] = None,
    page_size: int = 500,
    columns: str = SCORING_COLUMNS,
) -> list[dict[str, Any]]:
    """
    Keyset page of movies ordered by id.
    Pass the last id of the previous page as after_id to continue.
    """
    query = client.table(TABLE_MOVIES).select(columns).order("id").limit(page_size)
    if after_id is not None:
        query = query.gt("id", after_id)
    return await client.rows(query, "movies page")


async def update_quality_score(client: SupabaseClient, movie_id: int, score: float) -> None:
    query = client.table(TABLE_MOVIES).update({"quality_score": score}).eq("id", movie_id)
    await client.execute(query, f"quality_score of movie {movie_id}")


async def list_movies_missing_ratings(client: SupabaseClient, limit: int) -> list[dict[str, Any]]:
    """
    Most-voted movies with an IMDb id and no ratings_external row yet.

    Anti-join on the embedded ratings row, so the datastore does the filtering
    however many movies are already rated.
    """
    query = (
        client.table(TABLE_MOVIES)
        .select(f"{RATING_CANDIDATE_COLUMNS},{TABLE_RATINGS_EXTERNAL}!left(movie_id)")
        .not_.is_("imdb_id", "null")
        .is_(TABLE_RATINGS_EXTERNAL, "null")
        .order("vote_count", desc=True)
        .limit(limit)
    )
    rows = await client.rows(query, "movies missing external ratings")
    for r in rows:
        r.pop(TABLE_RATINGS_EXTERNAL, None)
    return rows


async def upsert_movies(client: SupabaseClient, candidates: list[MovieCandidate]) -> list[dict[str, Any]]:
    """Upsert on tmdb_id; returns rows with the database ids."""
    if not candidates:
        return []
    query = client.table(TABLE_MOVIES).upsert([c.to_row() for c in candidates], on_conflict="tmdb_id")
    return await client.rows(query, "movies upsert")
