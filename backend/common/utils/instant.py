"""
Timestamp and calendar-date helpers.

Ride documents carry departure times either as datetimes or as ISO-8601
strings. Everything that crosses into the services layer is normalised here
into a single representation before any arithmetic is done on it.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from django.utils.dateparse import parse_date, parse_datetime


class InvalidTimestampError(ValueError):
    """Raised when a value cannot be interpreted as an instant or a date."""
    pass


def _aware(value: datetime) -> datetime:
    # Naive datetimes are treated as UTC
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _millis(value: datetime) -> int:
    delta = _aware(value) - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


@dataclass(frozen=True, order=True)
class Instant:
    """A point in time, held as milliseconds since the Unix epoch."""
    millis: int

    @classmethod
    def from_value(cls, value: Any) -> "Instant":
        """
        Build an Instant from any supported representation.

        Accepts datetimes (naive ones are UTC), ISO-8601 strings (a bare
        date means UTC midnight), epoch milliseconds as int/float, or an
        existing Instant.

        Raises:
            InvalidTimestampError: If the value cannot be interpreted
        """
        if isinstance(value, Instant):
            return value
        if isinstance(value, datetime):
            return cls(_millis(value))
        if isinstance(value, bool):
            raise InvalidTimestampError(f"Not a timestamp: {value!r}")
        if isinstance(value, float) and not math.isfinite(value):
            raise InvalidTimestampError(f"Not a finite timestamp: {value!r}")
        if isinstance(value, (int, float)):
            return cls(int(value))
        if isinstance(value, str):
            text = value.strip()
            try:
                parsed = parse_datetime(text)
                if parsed is None:
                    day = parse_date(text)
                    if day is not None:
                        parsed = datetime.combine(day, time.min)
            except ValueError as exc:
                raise InvalidTimestampError(f"Invalid timestamp string: {value!r}") from exc
            if parsed is None:
                raise InvalidTimestampError(f"Invalid timestamp string: {value!r}")
            return cls(_millis(parsed))
        raise InvalidTimestampError(f"Unsupported timestamp type: {type(value).__name__}")

    def distance_to(self, other: "Instant") -> int:
        """Absolute difference in milliseconds."""
        return abs(self.millis - other.millis)

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.millis / 1000, tz=timezone.utc)


def to_epoch_millis(value: Any) -> int:
    """Normalise a datetime, ISO string or epoch value to epoch milliseconds."""
    return Instant.from_value(value).millis


def to_calendar_date(value: Any) -> Optional[date]:
    """
    Convert a stored activity date to a calendar date.

    Empty values map to None. Datetimes are converted to their UTC date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _aware(value).astimezone(timezone.utc).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_date(value.strip())
        except ValueError as exc:
            raise InvalidTimestampError(f"Invalid date string: {value!r}") from exc
        if parsed is None:
            raise InvalidTimestampError(f"Invalid date string: {value!r}")
        return parsed
    raise InvalidTimestampError(f"Unsupported date type: {type(value).__name__}")


def utc_today() -> date:
    """Current calendar date in UTC."""
    return datetime.now(timezone.utc).date()
