"""
Timezone Utilities for Knowledge Core

All timestamps are stored in UTC.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get current time in UTC with timezone info.

    Always use this instead of datetime.utcnow() or datetime.now()
    for database timestamps.
    """
    return datetime.now(timezone.utc)


def datetime_to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO string, treating naive values as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()
