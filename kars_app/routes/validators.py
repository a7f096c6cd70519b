"""Lightweight request validation helpers."""

from typing import Any, Optional, Tuple

from ..explore.errors import InvalidInput
from ..explore.models import ExploreQuery


# Longest search text forwarded to upstream catalogs
MAX_QUERY_LENGTH = 200


def sanitize_string(value: Any, max_length: int = 500, allow_newlines: bool = False) -> str:
    """
    Sanitize a string by removing control characters and limiting length.

    Args:
        value: String to sanitize
        max_length: Maximum allowed length
        allow_newlines: Whether to allow newlines

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return ""

    # Remove control characters (except newlines if allowed)
    if allow_newlines:
        result = ''.join(c for c in value if c >= ' ' or c in '\n\r\t')
    else:
        result = ''.join(c for c in value if c >= ' ')

    # Limit length
    return result[:max_length]


def validate_explore_params(
    text: Optional[str],
    category: Optional[str]
) -> Tuple[Optional[ExploreQuery], Optional[str]]:
    """
    Validate /api/explore query parameters.

    Returns:
        (query, None) if valid, or (None, error message)
    """
    if category is None or category == "":
        return None, "Missing required parameter: type"
    try:
        query = ExploreQuery.parse(sanitize_string(text, MAX_QUERY_LENGTH), category)
    except InvalidInput as e:
        return None, str(e)
    return query, None
