"""
Application-wide constants.

This module contains constants used throughout the application to avoid
magic numbers and strings scattered in the codebase.
"""

# Recommendation cache
DEFAULT_CACHE_TTL_SECONDS = 5 * 60
CACHE_NAME_RECOMMENDATIONS = "recommendations"

# Cache key entity types
CACHE_TYPE_MOOD = "mood"

# Cache events (metric label values)
CACHE_EVENT_HIT = "hit"
CACHE_EVENT_MISS = "miss"
CACHE_EVENT_EXPIRED = "expired"
CACHE_EVENT_DEDUP = "dedup"
CACHE_EVENT_FETCH_STARTED = "fetch_started"
CACHE_EVENT_FETCH_FAILED = "fetch_failed"
CACHE_EVENT_EVICTED = "evicted"

# Quality score weights
WEIGHT_TMDB = 3
WEIGHT_IMDB = 4  # most trusted source
WEIGHT_ROTTEN_TOMATOES = 2
WEIGHT_METACRITIC = 2

# Quality score thresholds
MIN_TMDB_VOTES = 50
LOW_CONFIDENCE_VOTES = 100
MEDIUM_CONFIDENCE_VOTES = 500
LOW_CONFIDENCE = 0.70
MEDIUM_CONFIDENCE = 0.85
FULL_CONFIDENCE = 1.0
POPULARITY_BOOST_DIVISOR = 100
MAX_POPULARITY_BOOST = 10

# Mood recommendations
DEFAULT_RECOMMENDATION_LIMIT = 20
MAX_RECOMMENDATION_LIMIT = 50
DEFAULT_SLIDER_VALUE = 5
MIN_SLIDER_VALUE = 1
MAX_SLIDER_VALUE = 10
MOOD_RECOMMENDATIONS_RPC = "get_mood_recommendations"

# Time-of-day buckets (upper hour bound, exclusive)
TIME_OF_DAY_BUCKETS = (
    (6, "night"),
    (12, "morning"),
    (18, "afternoon"),
    (22, "evening"),
)
TIME_OF_DAY_LATE = "night"

# OMDb
OMDB_DAILY_QUOTA = 1000
OMDB_QUOTA_WARNING_RATIO = 0.9
OMDB_MAX_RETRIES = 2
OMDB_RETRY_PAUSE_SECONDS = 2.0

# TMDB importer
TMDB_DEFAULT_START_PAGE = 1
TMDB_DEFAULT_END_PAGE = 500  # 500 pages * 20 movies

# Tables
TABLE_MOVIES = "movies"
TABLE_RATINGS_EXTERNAL = "ratings_external"
TABLE_GENRES = "genres"
TABLE_MOVIE_GENRES = "movie_genres"
TABLE_MOOD_SESSIONS = "mood_sessions"

# Batch jobs
QUALITY_PROGRESS_LOG_EVERY = 100
