"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .appointments import AppointmentService, BookingStoreProtocol

__all__ = ["AppointmentService", "BookingStoreProtocol"]
