"""
Ride matching service.

This module handles:
    - Equality-only retrieval of open ride offers for a destination
    - In-memory seat and departure-window filtering
    - Ordering matches by closeness in time
"""

from .ride_matcher import (
    MatchResult,
    filter_candidates,
    find_matching_rides,
    search_matching_rides,
)

__all__ = [
    "MatchResult",
    "filter_candidates",
    "find_matching_rides",
    "search_matching_rides",
]
