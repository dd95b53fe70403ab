"""
In-memory booking store with a unique index on the start time.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Set

import pendulum

from ..domain.exceptions import ConflictError, NotFoundError
from ..domain.models import Booking, BookingRequest, timestamp_key

logger = logging.getLogger(__name__)


class InMemoryBookingStore:
    """
    Keeps bookings in a dict and enforces one booking per start time.

    The uniqueness check and the insert happen under one lock, so of two
    concurrent requests for the same slot exactly one succeeds and the other
    gets a ``ConflictError``.

    Ids are never reused, even after the highest one is cancelled.
    """

    def __init__(self, timezone: str = "UTC", bookings: Optional[Iterable[Booking]] = None):
        self.timezone = timezone
        self._lock = threading.Lock()
        self._bookings: Dict[int, Booking] = {}
        self._by_start: Dict[int, int] = {}
        self._next_id = 1

        for booking in bookings or []:
            self._insert(booking)

    def list_booked_timestamps(self, window_start: datetime, window_end: datetime) -> Set[int]:
        """Epoch keys of every booking starting inside the window, both ends inclusive."""
        low = timestamp_key(window_start)
        high = timestamp_key(window_end)

        with self._transaction():
            return {key for key in self._by_start if low <= key <= high}

    def create_booking(self, request: BookingRequest) -> Booking:
        """
        Store a new booking.

        Raises:
            ConflictError: If a booking already owns the start time
        """
        if request.start is None:
            raise ValueError("Cannot store a booking without a start time")

        start = pendulum.instance(request.start).in_timezone(self.timezone)
        key = timestamp_key(start)

        with self._transaction():
            if key in self._by_start:
                raise ConflictError(start, existing_id=self._by_start[key])

            booking = Booking(
                id=self._next_id,
                name=request.name.strip(),
                email=request.email.strip(),
                start=start,
                phone=request.phone or None,
                reason=request.reason or None,
            )
            self._insert(booking)

            try:
                self._persist()
            except Exception:
                self._remove(booking.id)
                raise

        logger.debug("Stored booking %s at %s", booking.id, start.to_iso8601_string())
        return booking

    def delete_booking(self, booking_id: int) -> Booking:
        """
        Remove a booking.

        Raises:
            NotFoundError: If no booking has this id
        """
        with self._transaction():
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise NotFoundError(booking_id)

            self._remove(booking_id)

            try:
                self._persist()
            except Exception:
                self._insert(booking)
                raise

        return booking

    def get_booking(self, booking_id: int) -> Booking:
        with self._transaction():
            booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFoundError(booking_id)
        return booking

    def list_bookings(self) -> List[Booking]:
        """All bookings ordered by start time."""
        with self._transaction():
            bookings = list(self._bookings.values())
        return sorted(bookings, key=lambda b: timestamp_key(b.start))

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Hold exclusive access to the bookings for one operation."""
        with self._lock:
            yield

    def _insert(self, booking: Booking) -> None:
        key = timestamp_key(booking.start)
        if key in self._by_start:
            raise ConflictError(booking.start, existing_id=self._by_start[key])

        self._bookings[booking.id] = booking
        self._by_start[key] = booking.id
        self._next_id = max(self._next_id, booking.id + 1)

    def _remove(self, booking_id: int) -> None:
        booking = self._bookings.pop(booking_id)
        self._by_start.pop(timestamp_key(booking.start), None)

    def _persist(self) -> None:
        """Hook for subclasses that write bookings somewhere durable."""
