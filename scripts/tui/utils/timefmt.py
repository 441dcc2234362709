"""
Timestamp rendering for the Xcode Cloud TUI.

The API returns ISO-8601 timestamps (usually UTC with a "Z" suffix). Rows show
them in the local timezone as "YYYY-MM-DD HH:MM:SS TZ".
"""

import re
from datetime import datetime, timedelta, timezone


LOCAL_TIME_FORMAT = "%Y-%m-%d %H:%M:%S %Z"

_ISO_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})"
    r"(?:\.\d*)?"
    r"(Z.*|[+-]\d{2}:\d{2}.*)?$"
)


def parse_iso8601(value: str) -> datetime | None:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Accepts fractional seconds (ignored), a "Z" suffix or a +HH:MM / -HH:MM
    offset. A timestamp without any zone is taken as UTC.

    Returns:
        Aware datetime, or None if value is not a supported timestamp
    """
    match = _ISO_PATTERN.match(value or "")
    if not match:
        return None

    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    if hour > 23 or minute > 59 or second > 59:
        return None

    offset = timedelta(0)
    zone = match.group(7)
    if zone and zone[0] in "+-":
        off_h, off_m = int(zone[1:3]), int(zone[4:6])
        if off_h > 23 or off_m > 59:
            return None
        offset = timedelta(hours=off_h, minutes=off_m)
        if zone[0] == "-":
            offset = -offset

    try:
        return datetime(year, month, day, hour, minute, second, tzinfo=timezone(offset))
    except ValueError:
        # Day out of range for the month (e.g. Feb 30)
        return None


def iso_utc_to_local(value: str) -> str:
    """
    Render an ISO-8601 timestamp in local time.

    Values that cannot be parsed (including "-") are returned unchanged.

    Examples:
        "2026-02-25T08:10:00Z"  -> "2026-02-25 09:10:00 CET" (in Europe/Paris)
        "-"                     -> "-"
    """
    parsed = parse_iso8601(value)
    if parsed is None:
        return value
    try:
        return parsed.astimezone().strftime(LOCAL_TIME_FORMAT)
    except (OverflowError, OSError, ValueError):
        return value
