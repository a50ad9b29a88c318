from __future__ import annotations

from feelflick.core.constants import TABLE_GENRES, TABLE_MOVIE_GENRES
from feelflick.integrations.supabase import SupabaseClient
from feelflick.integrations.tmdb import Genre


async def upsert_genres(client: SupabaseClient, genres: list[Genre]) -> int:
    # genres.id is the TMDB genre id
    if not genres:
        return 0
    rows = [{"id": g.id, "name": g.name} for g in genres]
    await client.execute(client.table(TABLE_GENRES).upsert(rows, on_conflict="id"), "genres upsert")
    return len(genres)


async def link_movie_genres(client: SupabaseClient, links: list[tuple[int, int]]) -> int:
    """links: (movie_id, genre_id) pairs."""
    if not links:
        return 0
    rows = [{"movie_id": m, "genre_id": g} for m, g in sorted(set(links))]
    query = client.table(TABLE_MOVIE_GENRES).upsert(rows, on_conflict="movie_id,genre_id")
    await client.execute(query, "movie_genres upsert")
    return len(rows)
