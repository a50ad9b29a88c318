from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass

from dotenv import load_dotenv

from feelflick.core.exceptions import DatastoreError, OMDbError, QuotaExceededError
from feelflick.core.logging import setup_logging
from feelflick.db.repositories.movies import list_movies_missing_ratings
from feelflick.db.repositories.ratings import mark_ratings_unavailable, save_external_ratings
from feelflick.integrations.omdb import OMDbClient
from feelflick.integrations.supabase import SupabaseClient

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


@dataclass
class RatingsReport:
    total: int = 0
    success: int = 0
    skipped: int = 0
    failed: int = 0
    with_imdb: int = 0
    with_rt: int = 0
    with_metacritic: int = 0
    quota_exhausted: bool = False


async def movies_needing_ratings(client: SupabaseClient, limit: int) -> list[dict]:
    # failed lookups also leave a row, so they are not retried every run
    return await list_movies_missing_ratings(client, limit)


async def fetch_external_ratings(
    client: SupabaseClient,
    omdb: OMDbClient,
    *,
    limit: int = DEFAULT_LIMIT,
    dry_run: bool = False,
) -> RatingsReport:
    movies = await movies_needing_ratings(client, limit)
    report = RatingsReport(total=len(movies))
    if not movies:
        logger.info("No movies need external ratings")
        return report

    logger.info("Found %d movies needing external ratings (dry_run=%s)", len(movies), dry_run)

    for i, movie in enumerate(movies):
        if i > 0 and i % 25 == 0:
            logger.info(
                "Progress: %d/%d (%d success, %d skipped, %d failed)",
                i, len(movies), report.success, report.skipped, report.failed,
            )

        movie_id = int(movie["id"])
        if dry_run:
            logger.debug("Would fetch ratings for %s (%s)", movie.get("title"), movie["imdb_id"])
            report.success += 1
            continue

        try:
            ratings = await omdb.get_ratings(movie["imdb_id"])
        except QuotaExceededError as e:
            logger.warning("%s; stopping", e)
            report.quota_exhausted = True
            break
        except OMDbError as e:
            logger.warning("%s for %s", e, movie.get("title"))
            try:
                await mark_ratings_unavailable(client, movie_id, str(e))
                report.skipped += 1
            except DatastoreError as db_err:
                logger.error("Could not mark movie %s as unavailable: %s", movie_id, db_err)
                report.failed += 1
            continue

        try:
            await save_external_ratings(client, movie_id, ratings)
        except DatastoreError as e:
            logger.error("Failed to store ratings for %s: %s", movie.get("title"), e)
            report.failed += 1
            continue

        report.success += 1
        report.with_imdb += ratings.imdb_rating is not None
        report.with_rt += ratings.rt_rating is not None
        report.with_metacritic += ratings.metacritic_score is not None
        logger.info(
            "%s: IMDb %s, RT %s, Meta %s",
            movie.get("title"),
            ratings.imdb_rating or "N/A",
            ratings.rt_rating or "N/A",
            ratings.metacritic_score or "N/A",
        )

    logger.info(
        "External ratings done: %d success, %d skipped, %d failed, OMDb calls %d",
        report.success, report.skipped, report.failed, omdb.request_count,
    )
    return report


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Fetch IMDb / Rotten Tomatoes / Metacritic ratings from OMDb")
    p.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    p.add_argument("--dry-run", action="store_true")
    return p.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    client = await SupabaseClient.connect()
    async with client, OMDbClient() as omdb:
        report = await fetch_external_ratings(client, omdb, limit=args.limit, dry_run=args.dry_run)

    print(f"✅ Fetched {report.success} / {report.total} (skipped {report.skipped}, failed {report.failed})")
    return 0 if report.failed == 0 or report.success > 0 else 1


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    raise SystemExit(asyncio.run(main()))
