"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP layer.

Modules:
    - matching: Ride offer matching
    - activity: Activity counters, streaks and badges
    - ride_management: Ride posting, joining and status lifecycle
"""

# Expose commonly used functions at package level
from .matching import (
    MatchResult,
    find_matching_rides,
    search_matching_rides,
)
from .activity import (
    ActivityResult,
    ActivityType,
    get_achievement_progress,
    track_activity,
    track_multiple_activities,
)
from .ride_management import (
    RideResult,
    create_ride,
    join_ride,
    update_ride_status,
    RideNotFoundError,
    RideNotAvailableError,
    NoSeatsAvailableError,
    AlreadyJoinedError,
    NotRideHostError,
    InvalidStatusTransitionError,
)

__all__ = [
    # Matching
    "MatchResult",
    "find_matching_rides",
    "search_matching_rides",
    # Activity
    "ActivityResult",
    "ActivityType",
    "get_achievement_progress",
    "track_activity",
    "track_multiple_activities",
    # Ride management
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
