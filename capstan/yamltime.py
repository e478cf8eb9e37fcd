"""Timestamps stored in package manifests."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

NOT_AVAILABLE = "N/A"

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})\Z"
)
_FRIENDLY = re.compile(r"(\d{4})-(\d{2})-(\d{2}) (\d{2}):(\d{2})\Z")


@dataclass
class YamlTime:
    """A point in time, or None when the stored value was missing or invalid."""

    time: datetime | None = None

    def marshal(self) -> str:
        """Return the RFC 3339 form (without fractions), or 'N/A'."""
        if self.time is None:
            return NOT_AVAILABLE
        return _format_rfc3339(self.time)

    def get_time(self) -> datetime | None:
        return self.time

    def __str__(self) -> str:
        if self.time is None:
            return NOT_AVAILABLE
        t = self.time
        return f"{t.year:04d}-{t.month:02d}-{t.day:02d} {t.hour:02d}:{t.minute:02d}"


def parse_yaml_time(value: Any) -> YamlTime:
    """Build a YamlTime from a value read out of YAML.

    Strings in RFC 3339 or 'YYYY-MM-DD HH:MM' form are accepted, as are
    timezone-aware datetimes; anything else gives an empty YamlTime.
    """
    if isinstance(value, datetime):
        return YamlTime(value if value.tzinfo is not None else None)
    if isinstance(value, str):
        return YamlTime(_parse_rfc3339(value) or _parse_friendly(value))
    return YamlTime()


def _parse_rfc3339(text: str) -> datetime | None:
    match = _RFC3339.match(text)
    if match is None:
        return None
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction = match.group(7) or ""
    micro = int(fraction[:6].ljust(6, "0")) if fraction else 0
    zone = match.group(8)
    try:
        if zone == "Z":
            tz = timezone.utc
        else:
            sign = -1 if zone[0] == "-" else 1
            offset = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
            tz = timezone(sign * offset)
        return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)
    except ValueError:
        return None


def _parse_friendly(text: str) -> datetime | None:
    match = _FRIENDLY.match(text)
    if match is None:
        return None
    year, month, day, hour, minute = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    except ValueError:
        return None


def _format_rfc3339(t: datetime) -> str:
    if t.tzinfo is None:
        t = t.astimezone()
    base = (
        f"{t.year:04d}-{t.month:02d}-{t.day:02d}"
        f"T{t.hour:02d}:{t.minute:02d}:{t.second:02d}"
    )
    offset = t.utcoffset()
    if not offset:
        return base + "Z"
    total = int(offset.total_seconds())
    sign = "-" if total < 0 else "+"
    hours, minutes = divmod(abs(total) // 60, 60)
    return f"{base}{sign}{hours:02d}:{minutes:02d}"