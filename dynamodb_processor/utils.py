"""
Query Processor Utilities - Consolidated Module

Key Features:
- Timestamp handling (UTC normalization and sortable ISO-8601 rendering)
- Continuation token encoding/decoding (opaque base64 cursors)
- Projection building with expression attribute names
"""

import base64
import binascii
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import AttributeCodecError, InvalidCursorError

logger = logging.getLogger(__name__)


# =============================================================================
# Timestamp Utilities
# =============================================================================

def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert datetime to UTC.

    Naive datetimes are assumed to already be in UTC.

    Examples:
        >>> to_utc(datetime(2024, 1, 1, 10, 0))  # -> 2024-01-01 10:00:00+00:00
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as a fixed-width ISO-8601 UTC string.

    Fixed width (microseconds always present, ``Z`` suffix) keeps
    lexicographic order identical to chronological order, which the
    ``timestamp`` range filter depends on.

    Example:
        >>> format_timestamp(datetime(2024, 1, 1, tzinfo=timezone.utc))
        '2024-01-01T00:00:00.000000Z'
    """
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# =============================================================================
# Continuation Tokens
# =============================================================================

def encode_cursor(key) -> Optional[str]:
    """Encode a continuation key as an opaque URL-safe token.

    Args:
        key: Tagged key (``Dict[str, AttributeValue]``) from a page result

    Returns:
        Base64 token, or None when there is no key
    """
    if not key:
        return None
    from .models.attribute_value import item_to_dynamodb

    payload = json.dumps(item_to_dynamodb(key, binary_as_base64=True), sort_keys=True, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(token: Optional[str]):
    """Decode a token produced by :func:`encode_cursor`.

    Returns:
        Tagged key, or None for an empty token

    Raises:
        InvalidCursorError: If the token is not a valid continuation key
    """
    if not token:
        return None
    from .models.attribute_value import item_from_dynamodb

    try:
        raw = json.loads(base64.urlsafe_b64decode(token.encode("ascii")).decode("utf-8"))
        if not isinstance(raw, dict) or not raw:
            raise ValueError("continuation key must be a non-empty object")
        return item_from_dynamodb(raw, binary_as_base64=True)
    except (binascii.Error, UnicodeError, ValueError, TypeError, AttributeCodecError) as e:
        logger.debug(f"Rejected continuation token: {e}")
        raise InvalidCursorError("Invalid continuation token", errors={'continuationToken': str(e)}, original_error=e) from e


# =============================================================================
# Query Building Utilities
# =============================================================================

def build_projection_expression(fields: Optional[List[str]], prefix: str = "#p") -> Tuple[Optional[str], Optional[Dict[str, str]]]:
    """Build ProjectionExpression with ExpressionAttributeNames.

    Every field goes through a name placeholder so reserved words such as
    ``timestamp`` can be projected safely.

    Example:
        >>> build_projection_expression(['subjectId', 'timestamp'])
        ('#p0, #p1', {'#p0': 'subjectId', '#p1': 'timestamp'})
    """
    if not fields:
        return None, None

    expression_names = {}
    projection_parts = []

    for i, field in enumerate(fields):
        attr_name = f"{prefix}{i}"
        expression_names[attr_name] = field
        projection_parts.append(attr_name)

    return ', '.join(projection_parts), expression_names


def stable_json(value: Any) -> str:
    """Compact JSON with sorted keys, for deterministic keys."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


__all__ = [
    "to_utc",
    "format_timestamp",
    "encode_cursor",
    "decode_cursor",
    "build_projection_expression",
    "stable_json",
]
