"""
Domain-specific exception hierarchy for the slotbook application.
"""

from typing import List, Optional

from .validator import ValidationResult


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InputError(SchedulingError):
    """Raised when a date or other request parameter cannot be parsed."""


class ValidationError(SchedulingError):
    """Raised when a booking request breaks one or more rules."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.messages))

    @property
    def messages(self) -> List[str]:
        return self.result.messages


class ConflictError(SchedulingError):
    """Raised by a store when the requested start time is already taken."""

    def __init__(self, start, existing_id: Optional[int] = None):
        self.start = start
        self.existing_id = existing_id
        super().__init__(f"Slot {start.to_iso8601_string()} has already been booked")


class NotFoundError(SchedulingError):
    """Raised when a booking id does not exist."""

    def __init__(self, booking_id):
        self.booking_id = booking_id
        super().__init__(f"Appointment not found: {booking_id}")


class StorageError(SchedulingError):
    """Raised when the booking file cannot be read or written."""
