"""
Application services for browsing availability and managing bookings.

The service reads booked timestamps through a store adapter and delegates the
actual slot and validation rules to the domain-level ``SlotGenerator`` and
``BookingValidator``. This keeps the CLI thin and lets tests swap in an
in-memory store via a simple protocol.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol, Set

import pendulum
from pendulum import Date, DateTime

from ..domain.exceptions import InputError, ValidationError
from ..domain.models import Booking, BookingRequest, BusinessHoursPolicy, Slot
from ..domain.slot_generator import SlotGenerator
from ..domain.validator import BookingValidator

logger = logging.getLogger(__name__)

DATE_FORMAT = "YYYY-MM-DD"
SCOPES = ("all", "upcoming", "past")


class BookingStoreProtocol(Protocol):
    """Protocol describing the storage behaviour needed by the service."""

    def list_booked_timestamps(self, window_start: datetime, window_end: datetime) -> Set[int]:
        """Return epoch keys of bookings starting inside the window."""

    def create_booking(self, request: BookingRequest) -> Booking:
        """Persist a booking, raising ``ConflictError`` if the start is taken."""

    def delete_booking(self, booking_id: int) -> Booking:
        """Remove a booking, raising ``NotFoundError`` if it does not exist."""

    def get_booking(self, booking_id: int) -> Booking:
        """Return one booking, raising ``NotFoundError`` if it does not exist."""

    def list_bookings(self) -> List[Booking]:
        """Return all bookings ordered by start time."""


class AppointmentService:
    """
    Orchestrates storage reads, slot generation and booking validation.

    The store's uniqueness constraint is the final guard against double
    booking; a lost race surfaces as ``ConflictError`` and is not retried.
    """

    def __init__(
        self,
        store: BookingStoreProtocol,
        policy: BusinessHoursPolicy,
        default_range_days: int = 7,
        max_range_days: int = 62,
    ) -> None:
        self._store = store
        self._policy = policy
        self._generator = SlotGenerator(policy)
        self._validator = BookingValidator(policy)
        self._default_range_days = default_range_days
        self._max_range_days = max_range_days

    @property
    def policy(self) -> BusinessHoursPolicy:
        return self._policy

    def now(self) -> DateTime:
        return pendulum.now(self._policy.timezone)

    def available_slots(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Slot]:
        """
        List free slots between two dates.

        Args:
            start_date: First day as ``YYYY-MM-DD``; defaults to today
            end_date: Last day as ``YYYY-MM-DD``; defaults to a week after the start
            now: Reference time; defaults to the current time

        Raises:
            InputError: If a date is malformed or the range is invalid
        """
        now = now or self.now()

        start = self._parse_date(start_date) if start_date else self._policy.localize(now).date()
        end = (
            self._parse_date(end_date)
            if end_date
            else start.add(days=self._default_range_days)
        )

        if end < start:
            raise InputError("end_date must not be before start_date")
        if (end - start).in_days() > self._max_range_days:
            raise InputError(f"Date range must not exceed {self._max_range_days} days")

        window_start = pendulum.datetime(start.year, start.month, start.day, tz=self._policy.timezone)
        window_end = pendulum.datetime(end.year, end.month, end.day, tz=self._policy.timezone).end_of("day")
        booked = self._store.list_booked_timestamps(window_start, window_end)

        slots = self._generator.generate_available(
            start_date=start,
            end_date=end,
            booked_timestamps=booked,
            now=now,
        )

        logger.debug(
            "Availability %s..%s: %d free slot(s), %d booked",
            start.to_date_string(), end.to_date_string(), len(slots), len(booked),
        )
        return slots

    def available_payload(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, List[Dict[str, str]]]:
        """Availability in the JSON shape served to clients."""
        slots = self.available_slots(start_date=start_date, end_date=end_date, now=now)
        return {"available_slots": [slot.to_dict() for slot in slots]}

    def book(self, fields: Mapping[str, Any], now: Optional[datetime] = None) -> Booking:
        """
        Validate and store a booking.

        Args:
            fields: ``name``, ``email``, ``date_time`` and optional ``phone``, ``reason``
            now: Reference time; defaults to the current time

        Raises:
            InputError: If ``date_time`` cannot be parsed
            ValidationError: If any booking rule fails
            ConflictError: If the slot was taken between the check and the write
        """
        now = now or self.now()

        request = BookingRequest(
            name=fields.get("name") or "",
            email=fields.get("email") or "",
            phone=fields.get("phone") or None,
            start=self._parse_timestamp(fields.get("date_time")),
            reason=fields.get("reason") or None,
        )

        booked: Set[int] = set()
        if request.start is not None:
            local = self._policy.localize(request.start)
            booked = self._store.list_booked_timestamps(local.start_of("day"), local.end_of("day"))

        result = self._validator.validate(request, booked, now)
        if not result.is_valid:
            logger.warning("Booking rejected: %s", "; ".join(result.messages))
            raise ValidationError(result)

        booking = self._store.create_booking(request)
        logger.info("Booked appointment %s at %s", booking.id, booking.start.to_iso8601_string())
        return booking

    def cancel(self, booking_id: int) -> Booking:
        """
        Remove a booking.

        Raises:
            NotFoundError: If the booking does not exist
        """
        booking = self._store.delete_booking(booking_id)
        logger.info("Cancelled appointment %s", booking_id)
        return booking

    def get(self, booking_id: int) -> Booking:
        return self._store.get_booking(booking_id)

    def list_appointments(
        self,
        scope: str = "all",
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[Booking]:
        """
        List bookings, optionally filtered and paginated.

        ``upcoming`` is soonest first, ``past`` is most recent first.
        """
        if scope not in SCOPES:
            raise InputError(f"Unknown scope '{scope}'. Use one of: {', '.join(SCOPES)}")

        bookings = self._store.list_bookings()

        if scope != "all":
            reference = self._policy.localize(now or self.now())
            if scope == "upcoming":
                bookings = [b for b in bookings if b.start >= reference]
            else:
                bookings = [b for b in reversed(bookings) if b.start < reference]

        return self._paginate(bookings, page, per_page)

    @staticmethod
    def _paginate(
        bookings: List[Booking],
        page: Optional[int],
        per_page: Optional[int],
    ) -> List[Booking]:
        if page is None and per_page is None:
            return bookings

        page = 1 if page is None else page
        if per_page is None:
            per_page = len(bookings) or 1
        if page < 1 or per_page < 1:
            raise InputError("page and per_page must be positive")

        offset = (page - 1) * per_page
        return bookings[offset:offset + per_page]

    def _parse_date(self, value: str) -> Date:
        try:
            return pendulum.from_format(value.strip(), DATE_FORMAT, tz=self._policy.timezone).date()
        except ValueError as exc:
            raise InputError("Invalid date format") from exc

    def _parse_timestamp(self, value: Any) -> Optional[DateTime]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return self._policy.localize(value)

        try:
            parsed = pendulum.parse(str(value).strip(), tz=self._policy.timezone)
        except ValueError as exc:
            raise InputError(f"Invalid date_time: {value!r}") from exc

        if not isinstance(parsed, DateTime):
            raise InputError(f"Invalid date_time: {value!r}")
        return self._policy.localize(parsed)
