from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from feelflick.core.config import settings
from feelflick.core.constants import TMDB_DEFAULT_END_PAGE, TMDB_DEFAULT_START_PAGE
from feelflick.core.logging import setup_logging
from feelflick.db.repositories.genres import link_movie_genres, upsert_genres
from feelflick.db.repositories.movies import upsert_movies
from feelflick.integrations import tmdb
from feelflick.integrations.supabase import SupabaseClient
from feelflick.jobs.checkpoint import load_last_page, save_last_page

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    genres: int = 0
    pages: int = 0
    movies: int = 0
    genre_links: int = 0
    last_page: Optional[int] = None


def resolve_start_page(start_page: int, resume: bool, checkpoint_path: str) -> int:
    if not resume:
        return start_page
    last = load_last_page(checkpoint_path)
    if last is None:
        return start_page
    return max(start_page, last + 1)


async def import_page(client: SupabaseClient, page: int, report: ImportReport) -> bool:
    """Import one /movie/popular page. Returns False when the page is empty."""
    candidates = await tmdb.get_popular_movies(page)
    if not candidates:
        return False

    rows = await upsert_movies(client, candidates)
    ids_by_tmdb = {int(r["tmdb_id"]): int(r["id"]) for r in rows if r.get("id") is not None}

    links: list[tuple[int, int]] = []
    for c in candidates:
        movie_id = ids_by_tmdb.get(c.tmdb_id)
        if movie_id is None:
            logger.warning("No database id returned for tmdb_id=%s (%s)", c.tmdb_id, c.title)
            continue
        links.extend((movie_id, g) for g in c.genre_ids)

    report.movies += len(candidates)
    report.genre_links += await link_movie_genres(client, links)
    return True


async def import_movies(
    client: SupabaseClient,
    *,
    start_page: int = TMDB_DEFAULT_START_PAGE,
    end_page: int = TMDB_DEFAULT_END_PAGE,
    checkpoint_path: Optional[str] = None,
    page_delay: Optional[float] = None,
    with_genres: bool = True,
) -> ImportReport:
    """
    Import popular movies page by page, recording progress after each page.
    A failing page stops the run; the checkpoint still points at the last good one.
    """
    path = checkpoint_path or settings.import_checkpoint_path
    delay = settings.tmdb_page_delay_secs if page_delay is None else page_delay
    report = ImportReport()

    if with_genres:
        report.genres = await upsert_genres(client, await tmdb.get_genres())
        logger.info("Imported genres: %d", report.genres)

    for page in range(start_page, end_page + 1):
        if not await import_page(client, page, report):
            logger.info("Page %d is empty, stopping", page)
            break

        save_last_page(path, page)
        report.pages += 1
        report.last_page = page
        logger.info("Page %d done (%d movies so far)", page, report.movies)

        if page < end_page and delay > 0:
            # TMDB: no more than 40 requests / 10s
            await asyncio.sleep(delay)

    logger.info("Import completed. Last page imported: %s", report.last_page)
    return report


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Import popular TMDB movies into the catalog")
    p.add_argument("--start-page", type=int, default=TMDB_DEFAULT_START_PAGE)
    p.add_argument("--end-page", type=int, default=TMDB_DEFAULT_END_PAGE)
    p.add_argument("--resume", action="store_true", help="continue after the page in the checkpoint file")
    p.add_argument("--skip-genres", action="store_true")
    p.add_argument("--checkpoint", default=None, help="progress file (default from settings)")
    return p.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    checkpoint = args.checkpoint or settings.import_checkpoint_path
    start = resolve_start_page(args.start_page, args.resume, checkpoint)

    client = await SupabaseClient.connect()
    async with client:
        report = await import_movies(
            client,
            start_page=start,
            end_page=args.end_page,
            checkpoint_path=checkpoint,
            with_genres=not args.skip_genres,
        )

    print(f"✅ Imported {report.movies} movies from {report.pages} pages (last page: {report.last_page})")


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    asyncio.run(main())
