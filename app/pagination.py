"""Opaque cursor tokens for newest-first pagination."""

import base64
import binascii
from datetime import datetime
from typing import Optional, Tuple

from app.config import FEED_DEFAULT_LIMIT, FEED_MAX_LIMIT
from app.errors import DomainError

_SEPARATOR = "|"


def encode_cursor(created_at: datetime, item_id: str) -> str:
    """Encode the (created_at, id) position of the last item kept on a page."""
    raw = f"{created_at.isoformat()}{_SEPARATOR}{item_id}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    """
    Decode a cursor produced by :func:`encode_cursor`.

    Raises:
        DomainError: validation error for anything that isn't one of ours
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        timestamp, item_id = raw.rsplit(_SEPARATOR, 1)
        created_at = datetime.fromisoformat(timestamp)
    except (binascii.Error, UnicodeError, ValueError):
        raise DomainError.validation("Malformed pagination cursor")

    if not item_id:
        raise DomainError.validation("Malformed pagination cursor")
    return created_at, item_id


def clamp_limit(limit: Optional[int] = None) -> int:
    if limit is None:
        return FEED_DEFAULT_LIMIT
    return max(1, min(int(limit), FEED_MAX_LIMIT))
