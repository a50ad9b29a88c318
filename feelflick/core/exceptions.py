"""
Custom exception hierarchy for FeelFlick.

Every error raised on purpose by this package derives from FeelFlickError, so
callers (API handlers, batch drivers, CLI scripts) can catch one base class and
still show a friendly message through ``user_message``.
"""


class FeelFlickError(Exception):
    """Base exception for all FeelFlick errors."""

    def __init__(self, message: str, user_message: str | None = None):
        """
        Initialize exception.

        Args:
            message: Internal error message for logging
            user_message: User-friendly message for display (optional)
        """
        super().__init__(message)
        self.user_message = user_message or message


class ConfigurationError(FeelFlickError):
    """Raised when application configuration is invalid or missing."""

    pass


class ValidationError(FeelFlickError):
    """Raised when caller input validation fails."""

    pass


class DatastoreError(FeelFlickError):
    """Raised when a hosted datastore (PostgREST / RPC) call fails."""

    def __init__(self, message: str, status_code: int | None = None, user_message: str | None = None):
        super().__init__(message, user_message=user_message)
        self.status_code = status_code


class TMDBError(FeelFlickError):
    """Raised when TMDB API operations fail."""

    pass


class OMDbError(FeelFlickError):
    """Raised when OMDb API operations fail."""

    pass


class QuotaExceededError(OMDbError):
    """Raised when the daily OMDb request quota is used up."""

    def __init__(self, used: int, quota: int):
        super().__init__(
            f"OMDb daily quota exceeded ({used}/{quota})",
            user_message="External ratings quota used up for today, try again tomorrow",
        )
        self.used = used
        self.quota = quota


class RecommendationError(FeelFlickError):
    """Raised when recommendations cannot be produced."""

    def __init__(self, message: str):
        super().__init__(message, user_message="Recommendations are temporarily unavailable")
