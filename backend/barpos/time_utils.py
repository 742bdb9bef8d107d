from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    ISO-8601 timestamp with a trailing 'Z', second precision.

    SQLite hands back naive values for server_default=now(); those are UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
