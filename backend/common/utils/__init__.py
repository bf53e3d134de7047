"""Common utility functions."""

from .instant import (
    Instant,
    InvalidTimestampError,
    to_calendar_date,
    to_epoch_millis,
    utc_today,
)

__all__ = [
    "Instant",
    "InvalidTimestampError",
    "to_calendar_date",
    "to_epoch_millis",
    "utc_today",
]
