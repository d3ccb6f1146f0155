from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4


def utcnow() -> datetime:
    # timezone-aware UTC
    return datetime.now(timezone.utc)


def new_id() -> str:
    """
    Identifiers are opaque UUID strings, matching the upstream store.
    """
    return str(uuid4())


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    SQLite hands back naive datetimes; stored timestamps are always UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
