from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from feelflick.core.constants import (
    FULL_CONFIDENCE,
    LOW_CONFIDENCE,
    LOW_CONFIDENCE_VOTES,
    MAX_POPULARITY_BOOST,
    MEDIUM_CONFIDENCE,
    MEDIUM_CONFIDENCE_VOTES,
    MIN_TMDB_VOTES,
    POPULARITY_BOOST_DIVISOR,
    WEIGHT_IMDB,
    WEIGHT_METACRITIC,
    WEIGHT_ROTTEN_TOMATOES,
    WEIGHT_TMDB,
)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _safe_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _safe_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def parse_leading_int(value: Any) -> Optional[int]:
    """
    Leading integer of a rating string: "90%" -> 90, "74/100" -> 74, "N/A" -> None.
    Plain numbers are truncated.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    m = _LEADING_INT.match(str(value).replace("%", ""))
    return int(m.group(1)) if m else None


def parse_percentage(value: Any) -> Optional[int]:
    """Rotten Tomatoes style "90%" -> 90."""
    return parse_leading_int(value)


def round_half_up(value: float, digits: int = 1) -> float:
    # Python's round() is banker's rounding; scores are stored rounded half up
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class ExternalRatings:
    imdb_rating: float | None = None
    imdb_votes: int | None = None
    rt_rating: str | None = None
    metacritic_score: int | None = None

    @classmethod
    def from_row(cls, row: Optional[Mapping[str, Any]]) -> Optional["ExternalRatings"]:
        if not row:
            return None
        rt = row.get("rt_rating")
        return cls(
            imdb_rating=_safe_float(row.get("imdb_rating")),
            imdb_votes=_safe_int(row.get("imdb_votes")),
            rt_rating=str(rt) if rt is not None else None,
            metacritic_score=_safe_int(row.get("metacritic_score")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "imdb_rating": self.imdb_rating,
            "imdb_votes": self.imdb_votes,
            "rt_rating": self.rt_rating,
            "metacritic_score": self.metacritic_score,
        }

    def is_empty(self) -> bool:
        return (
            self.imdb_rating is None
            and self.rt_rating is None
            and self.metacritic_score is None
        )


def vote_confidence(vote_count: Optional[int]) -> float:
    votes = vote_count or 0
    if votes < LOW_CONFIDENCE_VOTES:
        return LOW_CONFIDENCE
    if votes < MEDIUM_CONFIDENCE_VOTES:
        return MEDIUM_CONFIDENCE
    return FULL_CONFIDENCE


def popularity_boost(popularity: Optional[float]) -> float:
    return min((popularity or 0.0) / POPULARITY_BOOST_DIVISOR, MAX_POPULARITY_BOOST)


def compute_quality_score(
    primary_rating: Optional[float],
    primary_vote_count: Optional[int],
    external_ratings: Optional[ExternalRatings] = None,
    popularity: Optional[float] = None,
) -> float:
    """
    Blend TMDB, IMDb, Rotten Tomatoes and Metacritic into one 0..100 score.

    Only the sources that are present take part in the weighted mean, so a
    missing source never drags the score down. TMDB counts only with at least
    MIN_TMDB_VOTES votes. The mean is discounted by vote_confidence() and a
    popularity boost of up to 10 points is added on top, which means the
    result can go slightly above 100.

    Args:
        primary_rating: TMDB vote_average (0..10)
        primary_vote_count: TMDB vote_count
        external_ratings: OMDb-sourced ratings, if any
        popularity: TMDB popularity

    Returns:
        Score rounded to one decimal
    """
    total = 0.0
    weight = 0

    votes = primary_vote_count or 0
    if primary_rating and votes >= MIN_TMDB_VOTES:
        total += (primary_rating / 10) * 100 * WEIGHT_TMDB
        weight += WEIGHT_TMDB

    if external_ratings is not None:
        if external_ratings.imdb_rating:
            total += (external_ratings.imdb_rating / 10) * 100 * WEIGHT_IMDB
            weight += WEIGHT_IMDB

        rt = parse_percentage(external_ratings.rt_rating)
        if rt is not None:
            total += rt * WEIGHT_ROTTEN_TOMATOES
            weight += WEIGHT_ROTTEN_TOMATOES

        if external_ratings.metacritic_score:
            total += external_ratings.metacritic_score * WEIGHT_METACRITIC
            weight += WEIGHT_METACRITIC

    quality = total / weight if weight > 0 else 0.0

    return round_half_up(quality * vote_confidence(primary_vote_count) + popularity_boost(popularity))
