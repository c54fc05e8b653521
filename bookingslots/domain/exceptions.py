"""
Domain-specific exception hierarchy for the booking slots application.
"""


class BookingSlotsError(Exception):
    """Base class for all application-level errors."""


class ScheduleConfigError(BookingSlotsError, ValueError):
    """Raised when operating hours are malformed or ambiguous."""


class InvalidRequestError(BookingSlotsError, ValueError):
    """Raised when request parameters are out of range or incomplete."""


class NotFoundError(BookingSlotsError):
    """Raised when a business or service does not exist."""


class PersistenceError(BookingSlotsError):
    """Raised when the REST backend cannot be reached or returns garbage."""


class SlotUnavailableError(BookingSlotsError):
    """Raised by the booking flow when the requested slot can no longer be booked."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message
