"""
Custom exceptions for the booking engine and payment workflow.
Raised in engine.py / lifecycle.py / payments.workflow and caught by callers
(admin actions, management commands).
"""


class BookingEngineError(Exception):
    """Base exception for all booking engine errors."""
    pass


class SlotNotAvailable(BookingEngineError):
    """Raised when the requested window is outside the massager's open hours."""
    pass


class SlotConflict(BookingEngineError):
    """Raised when the requested window overlaps a confirmed or in-progress booking."""
    pass


class InvalidSlotError(BookingEngineError):
    """Raised when the duration is out of bounds or the window crosses midnight."""
    pass


class InvalidTransition(BookingEngineError):
    """Raised when a status or payment-status change is not legal from the current state."""
    pass


class Unauthorized(BookingEngineError):
    """Raised when the actor's role or identity does not permit the operation."""
    pass


class NotFound(BookingEngineError):
    """Raised when a referenced booking, massager or payment does not exist."""
    pass


class GatewayUnavailable(BookingEngineError):
    """Raised when the payment gateway call fails or times out."""
    pass


class RatingNotAllowed(BookingEngineError):
    """Raised when a rating is attempted for a booking that is not completed."""
    pass


class DuplicateRating(BookingEngineError):
    """Raised when the booking already has a rating."""
    pass
