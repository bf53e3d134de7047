"""
Core ride lifecycle operations.

This module contains the business logic for posting, joining and
progressing rides, kept out of the views layer for testability and reuse.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.db import transaction

from rides.models import Ride
from services.activity import ActivityType, enqueue_activity
from .exceptions import (
    RideNotFoundError,
    RideNotAvailableError,
    NoSeatsAvailableError,
    AlreadyJoinedError,
    NotRideHostError,
    InvalidStatusTransitionError,
)

logger = logging.getLogger(__name__)


@dataclass
class RideResult:
    """Result object for ride operations."""
    success: bool
    ride: Optional[Ride] = None
    message: str = ""
    error_code: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


# Allowed host-driven status changes
STATUS_TRANSITIONS = {
    Ride.STATUS_OPEN: {Ride.STATUS_EN_ROUTE, Ride.STATUS_CANCELLED},
    Ride.STATUS_FILLED: {Ride.STATUS_EN_ROUTE, Ride.STATUS_CANCELLED},
    Ride.STATUS_EN_ROUTE: {Ride.STATUS_COMPLETED, Ride.STATUS_CANCELLED},
    Ride.STATUS_COMPLETED: set(),
    Ride.STATUS_CANCELLED: set(),
}


def _get_ride_for_update(ride_id: int) -> Ride:
    try:
        return Ride.objects.select_for_update().get(id=ride_id)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found")


@transaction.atomic
def create_ride(
    host,
    origin: str,
    destination: str,
    departure_time,
    ride_type: str = Ride.TYPE_OFFER,
    seats_available: Optional[int] = None,
) -> RideResult:
    """
    Post a ride offer or request on the board.

    Args:
        host: User model instance posting the ride
        origin: Pickup label
        destination: Destination label, used verbatim for matching
        departure_time: Aware datetime of departure
        ride_type: 'OFFER' or 'REQUEST'
        seats_available: Free seats; required (>= 1) for offers

    Returns:
        RideResult with the created ride

    Raises:
        RideNotAvailableError: If an offer has no seats to give
    """
    if ride_type == Ride.TYPE_OFFER:
        if not seats_available or seats_available < 1:
            raise RideNotAvailableError("An offer needs at least one available seat")
    else:
        seats_available = None

    ride = Ride.objects.create(
        host=host,
        ride_type=ride_type,
        origin=origin,
        destination=destination,
        departure_time=departure_time,
        seats_available=seats_available,
        status=Ride.STATUS_OPEN,
    )
    logger.info("Ride %s posted by user %s (%s to %s)", ride.id, host.id, ride_type, destination)

    if ride_type == Ride.TYPE_OFFER:
        transaction.on_commit(lambda: enqueue_activity(host.id, ActivityType.RIDE_SHARED))

    return RideResult(success=True, ride=ride, message="Ride posted")


@transaction.atomic
def join_ride(user, ride_id: int) -> RideResult:
    """
    Take a seat on a ride offer.

    Raises:
        RideNotFoundError: If the ride does not exist
        RideNotAvailableError: If the ride is not an open offer or the user hosts it
        NoSeatsAvailableError: If the offer is full
        AlreadyJoinedError: If the user already has a seat
    """
    ride = _get_ride_for_update(ride_id)

    if ride.ride_type != Ride.TYPE_OFFER or ride.status != Ride.STATUS_OPEN:
        raise RideNotAvailableError(f"Cannot join - ride is {ride.status}")
    if ride.host_id == user.id:
        raise RideNotAvailableError("You cannot join your own ride")
    if (ride.seats_available or 0) <= 0:
        raise NoSeatsAvailableError("No seats left on this ride")
    if ride.passengers.filter(id=user.id).exists():
        raise AlreadyJoinedError("You have already joined this ride")

    ride.passengers.add(user)
    ride.seats_available -= 1
    update_fields = ["seats_available", "updated_at"]
    if ride.seats_available == 0:
        ride.status = Ride.STATUS_FILLED
        update_fields.append("status")
    ride.save(update_fields=update_fields)

    logger.info("User %s joined ride %s (%s seats left)", user.id, ride.id, ride.seats_available)
    transaction.on_commit(lambda: enqueue_activity(user.id, ActivityType.RIDE_TAKEN))

    return RideResult(
        success=True,
        ride=ride,
        message="Seat confirmed",
        extra={"seats_available": ride.seats_available}
    )


@transaction.atomic
def update_ride_status(host, ride_id: int, new_status: str) -> RideResult:
    """
    Move a ride along its lifecycle (host only).

    Raises:
        RideNotFoundError: If the ride does not exist
        NotRideHostError: If the caller is not the host
        InvalidStatusTransitionError: If the change is not allowed
    """
    ride = _get_ride_for_update(ride_id)

    if ride.host_id != host.id:
        raise NotRideHostError("Only the host can update this ride")

    allowed = STATUS_TRANSITIONS.get(ride.status, set())
    if new_status not in allowed:
        raise InvalidStatusTransitionError(f"Cannot move ride from {ride.status} to {new_status}")

    previous = ride.status
    ride.status = new_status
    ride.save(update_fields=["status", "updated_at"])

    logger.info("Ride %s status %s -> %s", ride.id, previous, new_status)
    return RideResult(success=True, ride=ride, message=f"Ride marked as {new_status.lower()}")
