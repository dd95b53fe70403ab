"""
Domain layer - Pure slot and booking logic without external dependencies.
"""

from .models import Booking, BookingRequest, BusinessHoursPolicy, Slot, timestamp_key
from .slot_generator import SlotGenerator
from .validator import BookingValidator, FieldError, ValidationResult, validate

__all__ = [
    "Booking",
    "BookingRequest",
    "BusinessHoursPolicy",
    "Slot",
    "timestamp_key",
    "SlotGenerator",
    "BookingValidator",
    "FieldError",
    "ValidationResult",
    "validate",
]
