from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def load_last_page(path: str | Path) -> Optional[int]:
    """
    Last fully imported page from the progress file, or None when there is no
    usable checkpoint.
    """
    p = Path(path)
    if not p.exists():
        return None
    try:
        data = json.loads(p.read_text())
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable checkpoint %s: %r", p, e)
        return None

    last = data.get("lastPage") if isinstance(data, dict) else None
    if isinstance(last, bool) or not isinstance(last, int) or last < 0:
        logger.warning("Ignoring checkpoint %s with bad lastPage: %r", p, last)
        return None
    return last


def save_last_page(path: str | Path, page: int) -> None:
    # write-then-rename so an interrupted run never leaves half a file
    p = Path(path)
    tmp = p.with_name(p.name + ".tmp")
    tmp.write_text(json.dumps({"lastPage": page}))
    tmp.replace(p)
