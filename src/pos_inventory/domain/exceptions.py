"""Domain-level exceptions.

Every failure the engine reports is a subclass of DomainException so the
CLI layer can catch them uniformly.  Expected outcomes (insufficient stock,
bad input on a reservation request) are returned as structured results by
the Reservation Engine instead of being raised; the classes below cover
what propagates to the caller.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class StateConflictError(DomainException):
    """The entity is not in a state that allows the requested transition.

    Callers must re-fetch current state before deciding what to do next.
    """


class ConcurrencyConflictError(StateConflictError):
    """A compare-and-swap write found a different version than expected."""


class ReservationExpiredError(StateConflictError):
    """The reservation passed its expiry and counts as released."""


class DuplicateReservationError(DomainException):
    """A reservation already exists for this order id."""


class StoreUnavailableError(DomainException):
    """The backing store failed mid-operation.

    The whole operation was rolled back; it is safe to retry.
    """


class OrderProcessingError(DomainException):
    """Reserving inventory for an order failed and cleanup was attempted.

    ``cleanup`` carries the outcome of that attempt so callers can tell
    whether anything may have been left behind.
    """

    def __init__(self, message: str, cleanup) -> None:
        super().__init__(message)
        self.cleanup = cleanup
