"""
Utility functions for the feed service.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from livefeed import errors
from livefeed.config import settings

logger = logging.getLogger(__name__)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def utc_timestamp() -> str:
    """Current server time as an ISO-8601 UTC string with Z suffix (microsecond precision)."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def normalize_author(author: Optional[str]) -> str:
    """
    Trim and truncate an author name, substituting the placeholder when blank.

    Args:
        author: Raw author value from the request (may be None)

    Returns:
        Author name of at most MAX_AUTHOR_LENGTH characters
    """
    if author is None:
        return settings.DEFAULT_AUTHOR
    name = author.strip()[: settings.MAX_AUTHOR_LENGTH].strip()
    return name or settings.DEFAULT_AUTHOR


def validate_body(body: Optional[str]) -> tuple[str, Optional[str]]:
    """
    Validate a message body.

    Args:
        body: Raw body value from the request

    Returns:
        Tuple of (trimmed body, error message or None)
    """
    text = (body or "").strip()
    if not text:
        logger.debug("Rejecting empty message body")
        return text, errors.EMPTY_BODY
    if len(text) > settings.MAX_BODY_LENGTH:
        logger.debug(f"Rejecting message body of {len(text)} characters")
        return text, errors.BODY_TOO_LONG
    return text, None


def clamp(value: int, lower: int, upper: int) -> int:
    """Clamp value into [lower, upper]."""
    return max(lower, min(value, upper))


def parse_int(raw: Optional[str], name: str, default: int) -> int:
    """
    Parse an optional integer query parameter.

    Raises:
        ValueError: with a message naming the parameter when malformed
    """
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"Parameter '{name}' must be an integer.")
    # Database integer columns are signed 64-bit
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"Parameter '{name}' is out of range.")
    return value
