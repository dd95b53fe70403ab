"""
Core business logic for listing bookable slots.

Pure domain logic: no storage, no clock reads, no I/O. The caller supplies the
booked timestamps and the current time.
"""

from datetime import date, datetime
from typing import Iterable, List, Set

import pendulum
from pendulum import Date

from .models import BusinessHoursPolicy, Slot, Timestamp


class SlotGenerator:
    """
    Lists the free slots of a date range.

    Algorithm:
    1. Walk every calendar day from start to end, inclusive
    2. Skip days that are not workdays
    3. Enumerate the slot grid from opening hour to the last slot start
    4. Keep slots that are in the future and not already booked
    """

    def __init__(self, policy: BusinessHoursPolicy):
        self.policy = policy

    def generate_available(
        self,
        start_date: date,
        end_date: date,
        booked_timestamps: Iterable[Timestamp],
        now: datetime,
    ) -> List[Slot]:
        """
        Find all available slots between two dates.

        Args:
            start_date: First day to consider
            end_date: Last day to consider (inclusive)
            booked_timestamps: Start times already taken, as datetimes or epoch seconds
            now: Reference time; slots at or before it are dropped

        Returns:
            Slots in chronological order
        """
        booked = self._normalize_booked(booked_timestamps)
        now_key = self.policy.key(now)

        slots: List[Slot] = []

        for day in self._iter_days(start_date, end_date):
            if day.weekday() not in self.policy.workdays:
                continue

            for start in self.policy.slot_starts_for_day(day):
                key = self.policy.key(start)
                if key <= now_key or key in booked:
                    continue
                slots.append(Slot(start=start, policy=self.policy))

        return slots

    def _normalize_booked(self, booked_timestamps: Iterable[Timestamp]) -> Set[int]:
        return {self.policy.key(ts) for ts in booked_timestamps}

    @staticmethod
    def _iter_days(start_date: date, end_date: date) -> Iterable[Date]:
        current = pendulum.date(start_date.year, start_date.month, start_date.day)
        last = pendulum.date(end_date.year, end_date.month, end_date.day)

        while current <= last:
            yield current
            current = current.add(days=1)
