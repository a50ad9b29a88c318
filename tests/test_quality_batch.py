"""
Tests for the quality score batch against the PostgREST stub.
"""
from __future__ import annotations

import pytest

from feelflick.jobs.quality_scores import run_quality_batch


def _seed(stub):
    stub.tables["movies"] = [
        # all four sources, 200 votes -> 72.4
        {"id": 1, "tmdb_id": 101, "title": "Everything", "vote_average": 8.0, "vote_count": 200, "popularity": 50},
        # too few votes, no external row -> popularity boost only
        {"id": 2, "tmdb_id": 102, "title": "Obscure", "vote_average": 9.0, "vote_count": 30, "popularity": 250},
        # TMDB only, full confidence
        {"id": 3, "tmdb_id": 103, "title": "Classic", "vote_average": 8.0, "vote_count": 1000, "popularity": 0},
    ]
    stub.tables["ratings_external"] = [
        {"movie_id": 1, "imdb_rating": 8.5, "imdb_votes": 5000, "rt_rating": "90%", "metacritic_score": 85},
    ]


def _scores(stub):
    return {m["id"]: m.get("quality_score") for m in stub.tables["movies"]}


@pytest.mark.asyncio
async def test_batch_writes_scores(stub, client):
    _seed(stub)

    report = await run_quality_batch(client, delay_secs=0)

    assert report.processed == 3
    assert report.updated == 3
    assert report.failed == 0
    assert _scores(stub) == {1: 72.4, 2: 2.5, 3: 80.0}


@pytest.mark.asyncio
async def test_batch_is_idempotent(stub, client):
    _seed(stub)

    await run_quality_batch(client, delay_secs=0)
    first = _scores(stub)
    await run_quality_batch(client, delay_secs=0)

    assert _scores(stub) == first


@pytest.mark.asyncio
async def test_failed_item_is_skipped_and_batch_continues(stub, client):
    _seed(stub)
    stub.fail_when(
        lambda method, table, filters, body: 500
        if method == "PATCH" and table == "movies" and filters.get("id") == "eq.2"
        else None
    )

    report = await run_quality_batch(client, delay_secs=0)

    assert report.failed == 1
    assert report.failed_ids == [2]
    assert report.updated == 2
    scores = _scores(stub)
    assert scores[1] == 72.4
    assert scores[2] is None
    assert scores[3] == 80.0


@pytest.mark.asyncio
async def test_dry_run_writes_nothing(stub, client):
    _seed(stub)

    report = await run_quality_batch(client, delay_secs=0, dry_run=True)

    assert report.scores == {1: 72.4, 2: 2.5, 3: 80.0}
    assert all(v is None for v in _scores(stub).values())
    assert ("PATCH", "movies") not in stub.requests


@pytest.mark.asyncio
async def test_paging_limit_and_resume(stub, client):
    _seed(stub)

    first = await run_quality_batch(client, delay_secs=0, page_size=2, limit=2)
    assert first.processed == 2
    assert first.last_movie_id == 2
    assert _scores(stub)[3] is None

    rest = await run_quality_batch(client, delay_secs=0, page_size=2, start_after_id=first.last_movie_id)
    assert rest.processed == 1
    assert _scores(stub) == {1: 72.4, 2: 2.5, 3: 80.0}


@pytest.mark.asyncio
async def test_empty_catalog(stub, client):
    report = await run_quality_batch(client, delay_secs=0)
    assert report.processed == 0
    assert report.last_movie_id is None
