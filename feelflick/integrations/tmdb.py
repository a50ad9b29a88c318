from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from feelflick.core.config import settings
from feelflick.core.exceptions import ConfigurationError, TMDBError


def _safe_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _safe_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Genre:
    id: int
    name: str


@dataclass(frozen=True)
class MovieCandidate:
    tmdb_id: int
    title: str
    release_date: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    popularity: float | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    genre_ids: tuple[int, ...] = ()
    original_language: str | None = None

    def to_row(self) -> dict[str, Any]:
        """Columns written to the movies table (internal id is left to the database)."""
        return {
            "tmdb_id": self.tmdb_id,
            "title": self.title,
            "release_date": self.release_date or None,
            "overview": self.overview,
            "poster_path": self.poster_path,
            "popularity": self.popularity,
            "vote_average": self.vote_average,
            "vote_count": self.vote_count,
            "original_language": self.original_language,
        }


async def _tmdb_get(path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """
    Low-level GET against TMDB.
    Uses the v3 API key (api_key query param).
    """
    if not settings.tmdb_api_key:
        raise ConfigurationError("TMDB_API_KEY is not set. Put it into .env")

    final_params = dict(params or {})
    final_params["api_key"] = settings.tmdb_api_key
    final_params.setdefault("language", settings.tmdb_language)

    timeout = httpx.Timeout(settings.http_timeout_secs, connect=settings.http_timeout_secs)
    async with httpx.AsyncClient(base_url=settings.tmdb_base_url, timeout=timeout) as client:
        try:
            resp = await client.get(path, params=final_params)
        except httpx.HTTPError as e:
            raise TMDBError(f"TMDB network error: {e!r}") from e

    if resp.status_code == 401:
        raise TMDBError("TMDB 401 Unauthorized: check TMDB_API_KEY")
    if resp.status_code == 404:
        raise TMDBError(f"TMDB 404 Not Found: {path}")
    if resp.status_code == 429:
        raise TMDBError("TMDB 429 rate limit hit", user_message="TMDB is rate limiting us, slow down")
    if resp.status_code >= 400:
        raise TMDBError(f"TMDB HTTP {resp.status_code}: {resp.text[:300]}")

    try:
        data = resp.json()
    except ValueError as e:
        raise TMDBError("TMDB invalid JSON response") from e

    if not isinstance(data, dict):
        raise TMDBError("TMDB response is not a JSON object")

    return data


def _parse_candidate_list(results: Any) -> list[MovieCandidate]:
    candidates: list[MovieCandidate] = []
    if not isinstance(results, list):
        return candidates

    for r in results:
        if not isinstance(r, dict):
            continue
        tmdb_id = _safe_int(r.get("id"))
        title = r.get("title") or r.get("original_title")
        if not tmdb_id or not title:
            continue

        genre_ids: list[int] = []
        genre_ids_raw = r.get("genre_ids")
        if isinstance(genre_ids_raw, list):
            for g in genre_ids_raw:
                gid = _safe_int(g)
                if gid is not None:
                    genre_ids.append(gid)

        candidates.append(
            MovieCandidate(
                tmdb_id=tmdb_id,
                title=str(title),
                release_date=r.get("release_date") or None,
                overview=r.get("overview"),
                poster_path=r.get("poster_path"),
                popularity=_safe_float(r.get("popularity")),
                vote_average=_safe_float(r.get("vote_average")),
                vote_count=_safe_int(r.get("vote_count")),
                genre_ids=tuple(genre_ids),
                original_language=str(r.get("original_language")) if r.get("original_language") else None,
            )
        )
    return candidates


# -------------------------
# Public functions
# -------------------------

async def get_genres() -> list[Genre]:
    data = await _tmdb_get("/genre/movie/list")
    genres: list[Genre] = []
    raw = data.get("genres", [])
    if isinstance(raw, list):
        for g in raw:
            if isinstance(g, dict) and _safe_int(g.get("id")) is not None and g.get("name"):
                genres.append(Genre(id=int(g["id"]), name=str(g["name"])))
    return genres


async def get_popular_movies(page: int = 1) -> list[MovieCandidate]:
    """
    One page (20 titles) of /movie/popular.
    An empty list means we ran past the last page.
    """
    data = await _tmdb_get("/movie/popular", params={"page": page})
    return _parse_candidate_list(data.get("results", []))
