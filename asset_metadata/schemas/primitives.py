"""
Common primitives shared by request and response schemas.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

# A clock returns the current time; services take one so tests can pin time.
Clock = Callable[[], datetime]

NIL_UUID = uuid.UUID(int=0)


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    """Parse ``value`` into a UUID, returning None when it is not one."""
    if value is None:
        return None
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        return None


def is_nil_uuid(value: Optional[str]) -> bool:
    """True for a missing, empty, unparsable or all-zero identifier."""
    parsed = parse_uuid(value)
    return parsed is None or parsed == NIL_UUID


def as_utc(value: datetime) -> datetime:
    """Convert ``value`` to UTC; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
