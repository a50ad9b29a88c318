"""
Tests for the paginated TMDB importer with a fake TMDB.
"""
from __future__ import annotations

import json

import pytest

from feelflick.core.exceptions import TMDBError
from feelflick.integrations import tmdb
from feelflick.scripts.import_movies import import_movies, resolve_start_page
from tests.fakes.tmdb_stub import GENRES, POPULAR


@pytest.fixture()
def fake_tmdb(monkeypatch):
    pages_requested: list[int] = []

    async def get_genres():
        return [tmdb.Genre(id=g["id"], name=g["name"]) for g in GENRES["genres"]]

    async def get_popular_movies(page=1):
        pages_requested.append(page)
        return tmdb._parse_candidate_list(POPULAR.get(page, {"results": []})["results"])

    monkeypatch.setattr(tmdb, "get_genres", get_genres)
    monkeypatch.setattr(tmdb, "get_popular_movies", get_popular_movies)
    return pages_requested


@pytest.fixture()
def checkpoint(tmp_path):
    return str(tmp_path / "progress.json")


@pytest.mark.asyncio
async def test_import_until_empty_page(stub, client, fake_tmdb, checkpoint):
    report = await import_movies(client, start_page=1, end_page=10, checkpoint_path=checkpoint, page_delay=0)

    assert fake_tmdb == [1, 2, 3]
    assert report.pages == 2
    assert report.movies == 3
    assert report.genres == 3
    assert report.genre_links == 4
    assert report.last_page == 2

    titles = {m["tmdb_id"]: m["title"] for m in stub.tables["movies"]}
    assert titles == {603: "The Matrix", 13: "Forrest Gump", 27205: "Inception"}

    ids = {m["tmdb_id"]: m["id"] for m in stub.tables["movies"]}
    links = {(r["movie_id"], r["genre_id"]) for r in stub.tables["movie_genres"]}
    assert links == {(ids[603], 878), (ids[13], 18), (ids[13], 35), (ids[27205], 878)}

    with open(checkpoint) as f:
        assert json.load(f) == {"lastPage": 2}


@pytest.mark.asyncio
async def test_reimport_does_not_duplicate(stub, client, fake_tmdb, checkpoint):
    await import_movies(client, start_page=1, end_page=2, checkpoint_path=checkpoint, page_delay=0)
    first_ids = sorted(m["id"] for m in stub.tables["movies"])

    await import_movies(client, start_page=1, end_page=2, checkpoint_path=checkpoint, page_delay=0)

    assert sorted(m["id"] for m in stub.tables["movies"]) == first_ids
    assert len(stub.tables["movie_genres"]) == 4
    assert len(stub.tables["genres"]) == 3


@pytest.mark.asyncio
async def test_end_page_bounds_the_run(stub, client, fake_tmdb, checkpoint):
    report = await import_movies(
        client, start_page=1, end_page=1, checkpoint_path=checkpoint, page_delay=0, with_genres=False
    )

    assert fake_tmdb == [1]
    assert report.last_page == 1
    assert report.genres == 0
    assert "genres" not in stub.tables


@pytest.mark.asyncio
async def test_resume_continues_after_checkpoint(stub, client, fake_tmdb, checkpoint):
    await import_movies(client, start_page=1, end_page=1, checkpoint_path=checkpoint, page_delay=0)

    start = resolve_start_page(1, True, checkpoint)
    assert start == 2

    await import_movies(client, start_page=start, end_page=5, checkpoint_path=checkpoint, page_delay=0)
    assert fake_tmdb == [1, 2, 3]
    assert len(stub.tables["movies"]) == 3


def test_resolve_start_page_without_resume_or_checkpoint(checkpoint):
    assert resolve_start_page(7, False, checkpoint) == 7
    assert resolve_start_page(7, True, checkpoint) == 7


@pytest.mark.asyncio
async def test_failing_page_keeps_last_good_checkpoint(client, fake_tmdb, checkpoint, monkeypatch):
    ok = tmdb.get_popular_movies

    async def flaky(page=1):
        if page == 2:
            raise TMDBError("TMDB 429 rate limit hit")
        return await ok(page)

    monkeypatch.setattr(tmdb, "get_popular_movies", flaky)

    with pytest.raises(TMDBError):
        await import_movies(client, start_page=1, end_page=5, checkpoint_path=checkpoint, page_delay=0)

    with open(checkpoint) as f:
        assert json.load(f) == {"lastPage": 1}
