from datetime import datetime, timezone
from typing import Optional

# Used as the start of an open-ended validity window when ranking
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands timestamps back naive; everything stored here is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def within_window(at: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    # Missing bound = unbounded on that side, both bounds inclusive
    at = as_utc(at)
    if start is not None and as_utc(start) > at:
        return False
    if end is not None and as_utc(end) < at:
        return False
    return True
