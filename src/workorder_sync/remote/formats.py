"""Date and row formats shown by the remote system's UI.

The remote grid renders dates as ``M/D/YYYY h:MM AM`` and each service row
as ``- 4/7/2025 12:39 AM - 21 Minutes - Analyzed Unit``.
The parsers are for IRemoteFacade implementations that read the grid text.
"""

from __future__ import annotations

import re
from datetime import datetime

ROW_RE = re.compile(
    r"^\s*-\s*(?P<when>\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}\s*[AP]M)\s*-\s*"
    r"(?P<minutes>\d+)\s*Minutes\s*-\s*(?P<description>.+?)\s*$",
    re.IGNORECASE,
)
_WHEN_RE = re.compile(
    r"^\s*(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2})\s*([AP]M)\s*$",
    re.IGNORECASE,
)


def format_remote_date(value: datetime) -> str:
    """``M/D/YYYY`` without zero padding."""
    return f"{value.month}/{value.day}/{value.year}"


def format_remote_time(value: datetime) -> str:
    """``h:MM AM`` on a 12-hour clock."""
    hour12 = value.hour % 12 or 12
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{hour12}:{value.minute:02d} {suffix}"


def format_remote_datetime(value: datetime) -> str:
    return f"{format_remote_date(value)} {format_remote_time(value)}"


def parse_remote_datetime(text: str) -> datetime:
    """Parse ``M/D/YYYY h:MM AM``.

    Raises:
        ValueError: If the text is not in that format or names an
            impossible date or time
    """
    match = _WHEN_RE.match(text)
    if not match:
        raise ValueError(f"Unrecognised remote date: {text!r}")
    month, day, year, hour12, minute, suffix = match.groups()
    hour = int(hour12)
    if not 1 <= hour <= 12:
        raise ValueError(f"Hour out of range in remote date: {text!r}")
    hour = hour % 12 + (12 if suffix.upper() == "PM" else 0)
    return datetime(int(year), int(month), int(day), hour, int(minute))


def parse_service_row(text: str) -> tuple[datetime, int, str] | None:
    """Split a grid row into (timestamp, minutes, description).

    Returns:
        The parsed parts, or None if the text is not a service row
    """
    match = ROW_RE.match(text)
    if not match:
        return None
    try:
        when = parse_remote_datetime(match.group("when"))
    except ValueError:
        return None
    return when, int(match.group("minutes")), match.group("description")
