from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s :: %(message)s"

# HTTP stack logs every request line at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def setup_logging(level: str | None = None, *, cache_debug: bool | None = None) -> None:
    """
    Configure root logging once for the API or a CLI entry point.

    level defaults to $LOG_LEVEL (INFO). cache_debug (or CACHE_DEBUG=1) turns on
    the per-key hit / miss / dedup lines from feelflick.cache.
    """
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(level=resolved, format=LOG_FORMAT, stream=sys.stdout)
    if resolved == logging.INFO and name != "INFO":
        logging.getLogger(__name__).warning("Unknown LOG_LEVEL %r, using INFO", name)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if cache_debug is None:
        cache_debug = os.getenv("CACHE_DEBUG", "") in ("1", "true", "yes")
    if cache_debug:
        logging.getLogger("feelflick.cache").setLevel(logging.DEBUG)
