"""
Quality score batch

Recomputes movies.quality_score for every movie in the catalog:

1. Pages through movies by id (keyset pagination)
2. Looks up the movie's ratings_external row, if any
3. Computes the blended score (feelflick.recommender.quality)
4. Writes it back

A failure on one movie is logged and counted; the batch moves on. The score
is a pure function of the current rows, so re-running is safe, and
--start-after lets an interrupted run resume at a movie boundary.

Run with:
    python -m feelflick.jobs.quality_scores [--limit N] [--start-after ID] [--dry-run]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from feelflick.core.config import settings
from feelflick.core.constants import QUALITY_PROGRESS_LOG_EVERY
from feelflick.core.exceptions import FeelFlickError
from feelflick.core.logging import setup_logging
from feelflick.db.repositories.movies import fetch_movies_page, update_quality_score
from feelflick.db.repositories.ratings import get_external_ratings
from feelflick.integrations.supabase import SupabaseClient
from feelflick.recommender.quality import compute_quality_score

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    processed: int = 0
    updated: int = 0
    failed: int = 0
    last_movie_id: Optional[int] = None
    failed_ids: list[int] = field(default_factory=list)
    scores: dict[int, float] = field(default_factory=dict)


async def score_movie(client: SupabaseClient, movie: dict) -> float:
    ratings = await get_external_ratings(client, int(movie["id"]))
    return compute_quality_score(
        movie.get("vote_average"),
        movie.get("vote_count"),
        ratings,
        movie.get("popularity"),
    )


async def run_quality_batch(
    client: SupabaseClient,
    *,
    limit: Optional[int] = None,
    start_after_id: Optional[int] = None,
    dry_run: bool = False,
    delay_secs: Optional[float] = None,
    page_size: Optional[int] = None,
) -> BatchReport:
    delay = settings.quality_batch_delay_secs if delay_secs is None else delay_secs
    size = page_size or settings.quality_batch_page_size
    report = BatchReport()
    after_id = start_after_id

    while limit is None or report.processed < limit:
        movies = await fetch_movies_page(client, after_id=after_id, page_size=size)
        if not movies:
            break

        for movie in movies:
            if limit is not None and report.processed >= limit:
                break

            movie_id = int(movie["id"])
            after_id = movie_id
            report.processed += 1

            try:
                score = await score_movie(client, movie)
                if not dry_run:
                    await update_quality_score(client, movie_id, score)
            except FeelFlickError as e:
                report.failed += 1
                report.failed_ids.append(movie_id)
                logger.error("Quality score failed for movie %s: %s", movie_id, e)
            else:
                report.updated += 1
                report.scores[movie_id] = score
            finally:
                report.last_movie_id = movie_id

            if report.processed % QUALITY_PROGRESS_LOG_EVERY == 0:
                logger.info("Calculated %d scores (last movie id %s)", report.processed, movie_id)

            if delay > 0:
                await asyncio.sleep(delay)

        if len(movies) < size:
            break

    logger.info(
        "Quality scores done: processed=%d updated=%d failed=%d dry_run=%s",
        report.processed,
        report.updated,
        report.failed,
        dry_run,
    )
    return report


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Recompute movies.quality_score")
    p.add_argument("--limit", type=int, default=None, help="process at most N movies")
    p.add_argument("--start-after", type=int, default=None, help="resume after this movie id")
    p.add_argument("--dry-run", action="store_true", help="compute without writing")
    return p.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    client = await SupabaseClient.connect()
    async with client:
        report = await run_quality_batch(
            client,
            limit=args.limit,
            start_after_id=args.start_after,
            dry_run=args.dry_run,
        )

    print(f"✅ Calculated {report.updated} quality scores ({report.failed} failed)")
    if report.last_movie_id is not None:
        print(f"Last movie id: {report.last_movie_id} (use --start-after to resume)")
    return 0 if report.failed == 0 or report.updated > 0 else 1


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    raise SystemExit(asyncio.run(main()))
