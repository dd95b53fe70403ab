"""
Domain models for business hours, slots and bookings.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, FrozenSet, List, Optional, Union

import pendulum
from pendulum import DateTime

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

Timestamp = Union[datetime, int]


def timestamp_key(ts: Timestamp) -> int:
    """
    Normalize a timestamp to whole epoch seconds.

    Integers are treated as already-normalized keys. Naive datetimes are read as UTC;
    use ``BusinessHoursPolicy.key`` when they belong to the business timezone.
    """
    if isinstance(ts, int):
        return ts
    return int(pendulum.instance(ts).timestamp())


def format_clock(value: time) -> str:
    """Format a time of day as ``9:00 AM``."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


@dataclass(frozen=True)
class BusinessHoursPolicy:
    """
    When slots may start.

    Hours are half-open: with ``open_hour=9``, ``close_hour=17`` and 30 minute slots the
    first slot starts at 09:00 and the last one at 16:30.
    """
    workdays: FrozenSet[int] = frozenset({0, 1, 2, 3, 4})  # 0=Monday, 6=Sunday
    open_hour: int = 9
    close_hour: int = 17
    slot_minutes: int = 30
    timezone: str = "UTC"

    def __post_init__(self):
        object.__setattr__(self, "workdays", frozenset(self.workdays))

        if not 0 <= self.open_hour < self.close_hour <= 24:
            raise ValueError(
                f"Opening hour {self.open_hour} must be before closing hour {self.close_hour}"
            )
        if self.slot_minutes <= 0 or 60 % self.slot_minutes != 0:
            raise ValueError(f"slot_minutes must divide 60, got {self.slot_minutes}")

        invalid_days = sorted(day for day in self.workdays if day not in range(7))
        if invalid_days:
            raise ValueError(f"workdays must be between 0 and 6, got {invalid_days}")

    @property
    def last_slot_start(self) -> time:
        """Latest time of day a slot may start."""
        hour, minute = divmod(self._last_start_minutes, 60)
        return time(hour=hour, minute=minute)

    @property
    def _last_start_minutes(self) -> int:
        return self.close_hour * 60 - self.slot_minutes

    def localize(self, ts: datetime) -> DateTime:
        """Express a timestamp in the business timezone. Naive values are assumed local."""
        if ts.tzinfo is None:
            return pendulum.instance(ts, tz=self.timezone)
        return pendulum.instance(ts).in_timezone(self.timezone)

    def key(self, ts: Timestamp) -> int:
        """Epoch-second key for a timestamp, reading naive values in the business timezone."""
        if isinstance(ts, int):
            return ts
        return timestamp_key(self.localize(ts))

    def is_working_day(self, ts: datetime) -> bool:
        """Check if a timestamp falls on one of the configured workdays."""
        return self.localize(ts).weekday() in self.workdays

    def is_within_hours(self, ts: datetime) -> bool:
        """Check the time of day against opening hour and last slot start, both inclusive."""
        local = self.localize(ts)
        minutes = local.hour * 60 + local.minute
        return self.open_hour * 60 <= minutes <= self._last_start_minutes

    def is_within_business_hours(self, ts: datetime) -> bool:
        return self.is_working_day(ts) and self.is_within_hours(ts)

    def is_on_slot_boundary(self, ts: datetime) -> bool:
        """Check that a timestamp sits exactly on the slot grid."""
        local = self.localize(ts)
        return (
            local.minute % self.slot_minutes == 0
            and local.second == 0
            and local.microsecond == 0
        )

    def slot_starts_for_day(self, day: date) -> List[DateTime]:
        """
        All slot start times for a calendar day, in order.

        Does not check whether the day is a workday.
        """
        starts: List[DateTime] = []
        for minutes in range(
            self.open_hour * 60, self._last_start_minutes + 1, self.slot_minutes
        ):
            hour, minute = divmod(minutes, 60)
            starts.append(
                pendulum.datetime(
                    day.year, day.month, day.day, hour, minute, tz=self.timezone
                )
            )
        return starts

    def describe_workdays(self) -> str:
        """Human-readable workdays, e.g. ``Monday-Friday``."""
        days = sorted(self.workdays)
        if not days:
            return "none"
        if len(days) > 2 and days == list(range(days[0], days[-1] + 1)):
            return f"{WEEKDAY_NAMES[days[0]]}-{WEEKDAY_NAMES[days[-1]]}"
        return ", ".join(WEEKDAY_NAMES[day] for day in days)

    def describe_hours(self) -> str:
        """Human-readable slot start window, e.g. ``9:00 AM and 4:30 PM``."""
        opening = time(hour=self.open_hour)
        return f"{format_clock(opening)} and {format_clock(self.last_slot_start)}"


@dataclass(frozen=True)
class Slot:
    """
    One bookable unit of time. Computed on demand and never stored.
    """
    start: DateTime
    policy: BusinessHoursPolicy

    @property
    def end(self) -> DateTime:
        return self.start + timedelta(minutes=self.policy.slot_minutes)

    def iso(self) -> str:
        return self.start.to_iso8601_string()

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Monday, November 10, 2025 at 09:00 AM
        """
        return self.start.format("dddd, MMMM DD, YYYY [at] hh:mm A", locale="en")

    def to_dict(self) -> Dict[str, str]:
        return {"date_time": self.iso(), "formatted": self.format_display()}


@dataclass
class BookingRequest:
    """Fields proposed for a new booking, before validation."""
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    start: Optional[DateTime] = None
    reason: Optional[str] = None


@dataclass
class Booking:
    """
    A persisted appointment.
    """
    id: int
    name: str
    email: str
    start: DateTime
    phone: Optional[str] = None
    reason: Optional[str] = None
    created_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "date_time": self.start.to_iso8601_string(),
            "reason": self.reason,
            "created_at": self.created_at.to_iso8601_string(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], timezone: str = "UTC") -> "Booking":
        """Rebuild a booking from ``to_dict`` output."""
        created_at = data.get("created_at")
        return cls(
            id=int(data["id"]),
            name=data["name"],
            email=data["email"],
            start=pendulum.parse(data["date_time"]).in_timezone(timezone),
            phone=data.get("phone"),
            reason=data.get("reason"),
            created_at=pendulum.parse(created_at) if created_at else pendulum.now("UTC"),
        )
