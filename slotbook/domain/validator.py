"""
Validation of proposed bookings.

Every rule is checked and all failures are reported together, so a form can show
each problem at once. The result is a value; raising is left to the caller.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Tuple

from .models import BookingRequest, BusinessHoursPolicy, Timestamp

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")
REASON_MAX_LENGTH = 200


@dataclass(frozen=True)
class FieldError:
    """A single failed rule."""
    field: str
    code: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a booking request. Valid when there are no errors."""
    errors: Tuple[FieldError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def messages(self) -> List[str]:
        return [error.message for error in self.errors]

    def codes(self) -> List[str]:
        return [error.code for error in self.errors]

    def __bool__(self) -> bool:
        return self.is_valid


class BookingValidator:
    """
    Checks a booking request against the business-hours policy.

    The already-booked check is only a pre-check for a friendly message. The
    store's uniqueness constraint has the final say.
    """

    def __init__(self, policy: BusinessHoursPolicy):
        self.policy = policy

    def validate(
        self,
        proposed: BookingRequest,
        booked_timestamps: Iterable[Timestamp],
        now: datetime,
    ) -> ValidationResult:
        errors: List[FieldError] = []

        errors.extend(self._check_contact(proposed))
        errors.extend(self._check_start(proposed, booked_timestamps, now))

        return ValidationResult(errors=tuple(errors))

    def _check_contact(self, proposed: BookingRequest) -> List[FieldError]:
        errors: List[FieldError] = []

        if not (proposed.name or "").strip():
            errors.append(FieldError("name", "name_blank", "Name can't be blank"))

        email = (proposed.email or "").strip()
        if not email:
            errors.append(FieldError("email", "email_blank", "Email can't be blank"))
        elif not EMAIL_PATTERN.match(email):
            errors.append(FieldError("email", "email_invalid", "Email is invalid"))

        # Blank phone and reason count as absent
        if proposed.phone and not PHONE_PATTERN.match(proposed.phone):
            errors.append(
                FieldError("phone", "phone_invalid", "Phone must be a valid phone number")
            )

        if proposed.reason and len(proposed.reason) > REASON_MAX_LENGTH:
            errors.append(
                FieldError(
                    "reason",
                    "reason_too_long",
                    f"Reason is too long (maximum is {REASON_MAX_LENGTH} characters)",
                )
            )

        return errors

    def _check_start(
        self,
        proposed: BookingRequest,
        booked_timestamps: Iterable[Timestamp],
        now: datetime,
    ) -> List[FieldError]:
        start = proposed.start
        if start is None:
            return [FieldError("date_time", "start_blank", "Date time can't be blank")]

        errors: List[FieldError] = []
        start_key = self.policy.key(start)

        if self.policy.localize(start) <= self.policy.localize(now):
            errors.append(
                FieldError("date_time", "start_in_past", "Date time cannot be in the past")
            )

        if not self.policy.is_working_day(start):
            errors.append(
                FieldError(
                    "date_time",
                    "not_workday",
                    f"Date time must be on a weekday ({self.policy.describe_workdays()})",
                )
            )
        elif not self.policy.is_within_hours(start):
            errors.append(
                FieldError(
                    "date_time",
                    "outside_business_hours",
                    f"Date time must be between {self.policy.describe_hours()}",
                )
            )

        if not self.policy.is_on_slot_boundary(start):
            errors.append(
                FieldError(
                    "date_time",
                    "not_on_slot_boundary",
                    f"Date time must be in {self.policy.slot_minutes}-minute increments "
                    f"({self._example_starts()})",
                )
            )

        booked = {self.policy.key(ts) for ts in booked_timestamps}
        if start_key in booked:
            errors.append(
                FieldError("date_time", "already_booked", "Date time has already been taken")
            )

        return errors

    def _example_starts(self) -> str:
        first = self.policy.open_hour * 60
        second = first + self.policy.slot_minutes
        return f"e.g., {first // 60}:{first % 60:02d}, {second // 60}:{second % 60:02d}"


def validate(
    proposed: BookingRequest,
    booked_timestamps: Iterable[Timestamp],
    now: datetime,
    policy: BusinessHoursPolicy,
) -> ValidationResult:
    """Validate a booking request against ``policy``."""
    return BookingValidator(policy).validate(proposed, booked_timestamps, now)
