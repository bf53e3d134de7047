"""Custom exceptions for ride management."""


class RideNotFoundError(Exception):
    """Raised when a ride cannot be found."""
    pass


class RideNotAvailableError(Exception):
    """Raised when a ride is not in an available state for the operation."""
    pass


class NoSeatsAvailableError(RideNotAvailableError):
    """Raised when an offer has no free seats left."""
    pass


class AlreadyJoinedError(Exception):
    """Raised when a user joins a ride they already hold a seat on."""
    pass


class NotRideHostError(Exception):
    """Raised when someone other than the host manages a ride."""
    pass


class InvalidStatusTransitionError(Exception):
    """Raised when a ride status change is not allowed from the current status."""
    pass
