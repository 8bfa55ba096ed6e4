# servicehub/common/utils/time_utils.py
"""Strict parsing and formatting of booking dates and times."""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Union

_AMPM_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([AP]M)$", re.IGNORECASE)
_24H_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


@dataclass(frozen=True)
class TimeParseResult:
    """Either a parsed time or the reason it could not be parsed."""
    value: Optional[time] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


def _build_time(hour: int, minute: int, second: int) -> TimeParseResult:
    try:
        return TimeParseResult(value=time(hour, minute, second))
    except ValueError as e:
        return TimeParseResult(error=str(e))


def parse_booking_time(raw: Optional[str]) -> TimeParseResult:
    """
    Parse `h:mm[:ss] AM/PM` or `HH:mm[:ss]` into a time.

    Anything else is an error; malformed strings are never passed through.
    """
    if raw is None or not raw.strip():
        return TimeParseResult(error="time is empty")
    trimmed = raw.strip()

    ampm = _AMPM_PATTERN.match(trimmed)
    if ampm:
        hour = int(ampm.group(1))
        if not 1 <= hour <= 12:
            return TimeParseResult(error=f"hour out of range for 12-hour clock: {hour}")
        period = ampm.group(4).upper()
        if period == "PM" and hour < 12:
            hour += 12
        if period == "AM" and hour == 12:
            hour = 0
        return _build_time(hour, int(ampm.group(2)), int(ampm.group(3) or 0))

    hhmm = _24H_PATTERN.match(trimmed)
    if hhmm:
        return _build_time(int(hhmm.group(1)), int(hhmm.group(2)), int(hhmm.group(3) or 0))

    return TimeParseResult(error=f"unrecognized time format: {trimmed!r}")


def normalize_booking_time(raw: Optional[str]) -> Optional[str]:
    """Return the `HH:MM:SS` form of a time string, or None if it does not parse."""
    result = parse_booking_time(raw)
    return format_booking_time(result.value) if result.ok else None


def format_booking_time(value: time) -> str:
    return value.strftime("%H:%M:%S")


def parse_booking_date(raw: Union[str, date, datetime, None]) -> Optional[date]:
    """Reduce a date, datetime or ISO string to a plain calendar date."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    trimmed = raw.strip()
    if "T" in trimmed:
        trimmed = trimmed.split("T", 1)[0]
    try:
        return date.fromisoformat(trimmed)
    except ValueError:
        return None


def format_booking_date(value: date) -> str:
    """Human readable date used in notification text, e.g. 'March 1, 2024'."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_display_time(value: time) -> str:
    """12-hour clock without a leading zero, e.g. '2:30 PM'."""
    hour = value.hour % 12 or 12
    period = "PM" if value.hour >= 12 else "AM"
    return f"{hour}:{value.minute:02d} {period}"
