"""Time utilities with venue-local time (Asia/Kolkata unless configured)."""

import logging
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from typing import Optional, Union

from qrmenu.config import get_settings

logger = logging.getLogger(__name__)


def venue_tz(name: Optional[str] = None) -> tzinfo:
    """Venue timezone, read from settings on each call unless `name` is given."""
    name = name or get_settings().timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        # Fallback to system local timezone when tzdata is unavailable (Windows)
        logger.warning(f"unknown timezone {name!r}, using system local time")
        return datetime.now().astimezone().tzinfo


def iso_utc() -> str:
    """Return ISO timestamp in UTC with a trailing Z (what the order service stores)."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp from the order service; 'Z' suffix accepted."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def to_venue(dt: Optional[datetime], tz: Optional[Union[tzinfo, str]] = None) -> Optional[datetime]:
    """Convert a datetime to the venue tz (assumes UTC if naive); `tz` may be a zone name."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    if not isinstance(tz, tzinfo):
        tz = venue_tz(tz)
    return dt.astimezone(tz)
