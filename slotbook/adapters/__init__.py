"""
Adapters layer - Booking storage backends.
"""

from .json_store import JsonBookingStore
from .memory_store import InMemoryBookingStore

__all__ = ["InMemoryBookingStore", "JsonBookingStore"]
