"""
Booking-related exceptions.
"""

from typing import Optional


class BookingFlowError(Exception):
    """Base exception for booking flow errors."""
    pass


class BookingValidationError(BookingFlowError):
    """Exception raised when a draft field is missing or invalid.

    ``field`` names the offending draft field so the conversation can be
    routed back to the phase that owns it.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class SlotUnavailableError(BookingFlowError):
    """Exception raised when a booking slot is no longer available."""

    def __init__(self, message: str, date: Optional[str] = None, time: Optional[str] = None):
        super().__init__(message)
        self.date = date
        self.time = time


class BookingConflictError(SlotUnavailableError):
    """Raised by persistence when the (date, time) uniqueness constraint fails."""
    pass
