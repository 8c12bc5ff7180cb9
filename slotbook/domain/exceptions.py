"""
Domain-specific exception hierarchy for the slotbook application.
"""


class SlotbookError(Exception):
    """Base class for all application-level errors."""


class ValidationError(SlotbookError):
    """Raised when input data breaks a business rule."""


class DuplicateTemplateSlotError(ValidationError):
    """Raised when a venue already has a template starting at the same weekday and time."""

    def __init__(self, start_time: str):
        super().__init__(f"A time slot already starts at {start_time} on this day")
        self.start_time = start_time


class NotFoundError(SlotbookError):
    """Raised when a requested record does not exist."""


class VenueNotFoundError(NotFoundError):
    """Raised when a venue is unknown or has been deactivated."""


class TemplateSlotNotFoundError(NotFoundError):
    """Raised when a weekly template slot cannot be found."""


class BookingNotFoundError(NotFoundError):
    """Raised when a booking cannot be found."""


class StorageError(SlotbookError):
    """Raised when the backing store cannot be read or written."""


class AuthenticationError(SlotbookError):
    """Raised when an operator credential is missing or wrong."""


class ApiClientError(SlotbookError):
    """Raised when the remote booking API cannot be reached or rejects a call."""
