"""
Match ride requests against open ride offers.

Retrieval is an equality-only query on (ride_type, status, destination).
The seats and time-window checks are both range conditions, so they run in
memory on the candidate set instead of needing a composite index. This holds
up while a destination has tens of open offers, not thousands.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.conf import settings

from common.store import DocumentStore, default_store
from common.utils import Instant, InvalidTimestampError

logger = logging.getLogger(__name__)

RIDES_COLLECTION = "rides"

DEFAULT_WINDOW_MINUTES = 30


def get_match_window_ms() -> int:
    minutes = getattr(settings, "RIDE_MATCH_WINDOW_MINUTES", DEFAULT_WINDOW_MINUTES)
    return int(minutes) * 60 * 1000


@dataclass
class MatchResult:
    """Result object for ride matching."""
    success: bool
    rides: List[Dict[str, Any]] = field(default_factory=list)
    error_code: Optional[str] = None
    message: str = ""


def filter_candidates(
    candidates: List[Dict[str, Any]],
    requested: Instant,
    window_ms: int,
) -> List[Dict[str, Any]]:
    """
    Apply the seat and time-window checks to a candidate set.

    Args:
        candidates: Ride documents in retrieval order
        requested: Requested departure instant
        window_ms: Maximum allowed distance in milliseconds (inclusive)

    Returns:
        Matching documents sorted by closeness in time; ties keep retrieval order
    """
    scored: List[tuple] = []
    for ride in candidates:
        if (ride.get("seats_available") or 0) <= 0:
            continue

        try:
            departure = Instant.from_value(ride.get("departure_time"))
        except InvalidTimestampError:
            # One bad record must not sink the whole search
            logger.warning("Skipping ride %s with unreadable departure_time %r",
                           ride.get("id"), ride.get("departure_time"))
            continue

        time_diff = departure.distance_to(requested)
        if time_diff <= window_ms:
            scored.append((time_diff, ride))

    # list.sort is stable, which keeps retrieval order for equal distances
    scored.sort(key=lambda item: item[0])
    return [ride for (_, ride) in scored]


def search_matching_rides(
    destination: str,
    departure_time: Any,
    store: Optional[DocumentStore] = None,
) -> MatchResult:
    """
    Find open offers for a destination departing close to the requested time.

    Args:
        destination: Exact destination label (case-sensitive)
        departure_time: Requested departure as datetime, ISO string or epoch millis
        store: Document store to query (defaults to the ORM-backed store)

    Returns:
        MatchResult; success is False when the query was invalid or the store failed
    """
    if not isinstance(destination, str) or not destination:
        logger.warning("Ride match rejected: empty destination")
        return MatchResult(success=False, error_code="invalid_request",
                           message="destination must be a non-empty string")

    try:
        requested = Instant.from_value(departure_time)
    except InvalidTimestampError as exc:
        logger.warning("Ride match rejected: %s", exc)
        return MatchResult(success=False, error_code="invalid_request", message=str(exc))

    store = store or default_store
    try:
        candidates = store.query(
            RIDES_COLLECTION,
            ride_type="OFFER",
            status="OPEN",
            destination=destination,
        )
        rides = filter_candidates(candidates, requested, get_match_window_ms())
    except Exception:
        logger.exception("Error finding matching rides for destination=%r", destination)
        return MatchResult(success=False, error_code="store_unavailable",
                           message="Ride search is temporarily unavailable")

    logger.info("Matched %d of %d open offers to %r", len(rides), len(candidates), destination)
    return MatchResult(success=True, rides=rides)


def find_matching_rides(
    destination: str,
    departure_time: Any,
    store: Optional[DocumentStore] = None,
) -> List[Dict[str, Any]]:
    """
    List matching ride offers, closest departure first.

    Failures are logged and reported as an empty list, so callers cannot
    tell "no matches" from "search failed". Use search_matching_rides when
    that distinction matters.
    """
    return search_matching_rides(destination, departure_time, store=store).rides
