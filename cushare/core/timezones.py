"""
Timezone and timestamp helpers.

All timestamps inside cushare are timezone-aware UTC datetimes; timezones
only matter when events are bucketed into calendar days or months.
"""

import os
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MS = timedelta(milliseconds=1)


def local_timezone_name() -> str:
    """Name of the host's local timezone, as an IANA key when one is known."""
    tz_env = os.environ.get("TZ", "").lstrip(":")
    if tz_env:
        return tz_env

    target = os.path.realpath("/etc/localtime")
    if "zoneinfo/" in target:
        return target.split("zoneinfo/", 1)[1]

    local = datetime.now().astimezone().tzinfo
    key = getattr(local, "key", None)
    if key:
        return key
    return local.tzname(None) or "UTC"


def resolve_timezone(name: Optional[str] = None) -> tzinfo:
    """Resolve a timezone name to a tzinfo.

    Args:
        name: IANA timezone name, or None for the host's local timezone

    Returns:
        A tzinfo usable with datetime.astimezone

    Raises:
        ValueError: If the name is not a known timezone
    """
    if not name:
        return _local_timezone()
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise ValueError(f"Unknown timezone: {name}")


def _local_timezone() -> tzinfo:
    # Falls back to the current fixed offset only for names outside the tz database
    name = local_timezone_name()
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return datetime.now().astimezone().tzinfo


def epoch_ms(moment: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return (moment - EPOCH) // ONE_MS


def from_epoch_ms(value: Union[int, float]) -> datetime:
    return EPOCH + timedelta(milliseconds=value)


def parse_timestamp(value: Union[str, int, float, None]) -> Optional[datetime]:
    """Parse a log timestamp.

    Numbers are epoch milliseconds, strings are ISO-8601. Naive values are
    read as UTC. Returns None for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return from_epoch_ms(value)
        except (OverflowError, OSError, ValueError):
            return None

    text = value.strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date_option(value: str, tz: Optional[tzinfo] = None) -> datetime:
    """Parse a --since/--until style date.

    Accepts full ISO-8601 timestamps or a bare YYYY-MM-DD, which means
    midnight in the given timezone.

    Raises:
        ValueError: If the value cannot be parsed
    """
    text = value.strip()
    if DATE_ONLY_RE.match(text):
        day = datetime.strptime(text, "%Y-%m-%d")
        return day.replace(tzinfo=tz or resolve_timezone()).astimezone(timezone.utc)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid date format: {value}. Use ISO format or YYYY-MM-DD.")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or resolve_timezone())
    return parsed.astimezone(timezone.utc)
