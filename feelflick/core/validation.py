"""
Input validation utilities.

This module provides validation functions for caller inputs before they are
turned into cache keys or sent to the hosted datastore.
"""

from feelflick.core.constants import (
    MAX_RECOMMENDATION_LIMIT,
    MAX_SLIDER_VALUE,
    MIN_SLIDER_VALUE,
)
from feelflick.core.exceptions import ValidationError


def validate_user_id(user_id: str | None) -> str:
    """
    Validate a user identifier.

    Args:
        user_id: Auth provider user id (UUID string)

    Returns:
        Stripped user id

    Raises:
        ValidationError: If the id is missing or blank
    """
    if user_id is None or not str(user_id).strip():
        raise ValidationError("Missing user id", user_message="Please sign in to get recommendations")
    return str(user_id).strip()


def validate_slider(name: str, value: int) -> int:
    """
    Validate a mood slider (energy level, intensity openness).

    Args:
        name: Slider name, used in messages
        value: Slider value

    Returns:
        Validated value

    Raises:
        ValidationError: If value is outside the slider range
    """
    if not MIN_SLIDER_VALUE <= value <= MAX_SLIDER_VALUE:
        raise ValidationError(
            f"{name} {value} is out of range [{MIN_SLIDER_VALUE}, {MAX_SLIDER_VALUE}]",
            user_message=f"{name.replace('_', ' ').capitalize()} must be between "
            f"{MIN_SLIDER_VALUE} and {MAX_SLIDER_VALUE}",
        )
    return value


def validate_count(count: int, min_val: int = 1, max_val: int = MAX_RECOMMENDATION_LIMIT) -> int:
    """
    Validate count parameter.

    Args:
        count: Count value to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        Validated count

    Raises:
        ValidationError: If count is out of range
    """
    if not min_val <= count <= max_val:
        raise ValidationError(
            f"Count {count} is out of range [{min_val}, {max_val}]",
            user_message=f"Count must be between {min_val} and {max_val}",
        )

    return count
