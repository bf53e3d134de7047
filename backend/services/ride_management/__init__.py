"""
Ride management service - Core ride lifecycle operations.

This module handles:
    - Posting ride offers and requests
    - Joining rides
    - Progressing and cancelling rides
"""

from .ride_lifecycle import (
    RideResult,
    create_ride,
    join_ride,
    update_ride_status,
)

from .exceptions import (
    RideNotFoundError,
    RideNotAvailableError,
    NoSeatsAvailableError,
    AlreadyJoinedError,
    NotRideHostError,
    InvalidStatusTransitionError,
)

__all__ = [
    # Lifecycle operations
    "RideResult",
    "create_ride",
    "join_ride",
    "update_ride_status",
    # Exceptions
    "RideNotFoundError",
    "RideNotAvailableError",
    "NoSeatsAvailableError",
    "AlreadyJoinedError",
    "NotRideHostError",
    "InvalidStatusTransitionError",
]
