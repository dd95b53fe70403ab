"""
Tests for slot generator.
"""

import pendulum
import pytest

from slotbook.domain.models import BusinessHoursPolicy, timestamp_key
from slotbook.domain.slot_generator import SlotGenerator


def _clock(slot):
    return slot.start.format("HH:mm")


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    def test_single_day_with_one_booking(self):
        """Test a Monday with 09:00 already taken."""
        generator = SlotGenerator(policy=BusinessHoursPolicy())

        slots = generator.generate_available(
            start_date=pendulum.date(2025, 11, 10),  # Monday
            end_date=pendulum.date(2025, 11, 10),
            booked_timestamps={pendulum.parse("2025-11-10 09:00", tz="UTC")},
            now=pendulum.parse("2025-11-10 08:00", tz="UTC"),
        )

        assert len(slots) == 15
        assert _clock(slots[0]) == "09:30"
        assert _clock(slots[-1]) == "16:30"
        assert "09:00" not in [_clock(slot) for slot in slots]

    def test_exclude_weekends(self):
        """Test that weekends are skipped."""
        generator = SlotGenerator(policy=BusinessHoursPolicy())

        # Search from Friday to Monday
        slots = generator.generate_available(
            start_date=pendulum.date(2025, 11, 14),
            end_date=pendulum.date(2025, 11, 17),
            booked_timestamps=set(),
            now=pendulum.parse("2025-11-01 00:00", tz="UTC"),
        )

        days = sorted({slot.start.to_date_string() for slot in slots})

        # Should have 2 days: Friday and Monday (not Saturday, Sunday)
        assert days == ["2025-11-14", "2025-11-17"]
        assert len(slots) == 32

    def test_past_slots_are_dropped(self):
        """Test that only slots strictly after now are offered."""
        generator = SlotGenerator(policy=BusinessHoursPolicy())

        slots = generator.generate_available(
            start_date=pendulum.date(2025, 11, 10),
            end_date=pendulum.date(2025, 11, 10),
            booked_timestamps=set(),
            now=pendulum.parse("2025-11-10 12:30", tz="UTC"),
        )

        # 12:30 itself is not later than now
        assert _clock(slots[0]) == "13:00"
        assert len(slots) == 8

    def test_booked_timestamps_in_any_form(self):
        """Test that booked times match across timezones and as epoch keys."""
        generator = SlotGenerator(policy=BusinessHoursPolicy())

        booked = {
            pendulum.parse("2025-11-10T11:00:00+01:00"),  # 10:00 UTC
            timestamp_key(pendulum.parse("2025-11-10 11:00", tz="UTC")),
        }

        slots = generator.generate_available(
            start_date=pendulum.date(2025, 11, 10),
            end_date=pendulum.date(2025, 11, 10),
            booked_timestamps=booked,
            now=pendulum.parse("2025-11-10 08:00", tz="UTC"),
        )

        clocks = [_clock(slot) for slot in slots]
        assert "10:00" not in clocks
        assert "11:00" not in clocks
        assert len(slots) == 14

    def test_reversed_range_is_empty(self):
        """Test that a start after the end yields nothing."""
        generator = SlotGenerator(policy=BusinessHoursPolicy())

        slots = generator.generate_available(
            start_date=pendulum.date(2025, 11, 12),
            end_date=pendulum.date(2025, 11, 10),
            booked_timestamps=set(),
            now=pendulum.parse("2025-11-01 00:00", tz="UTC"),
        )

        assert slots == []

    def test_business_timezone(self):
        """Test that slots are laid out in the policy timezone."""
        policy = BusinessHoursPolicy(timezone="Europe/Berlin")
        generator = SlotGenerator(policy=policy)

        slots = generator.generate_available(
            start_date=pendulum.date(2025, 11, 10),
            end_date=pendulum.date(2025, 11, 10),
            booked_timestamps={pendulum.parse("2025-11-10T08:00:00Z")},  # 09:00 Berlin
            now=pendulum.parse("2025-11-10T07:00:00Z"),
        )

        assert slots[0].iso() == "2025-11-10T09:30:00+01:00"
        assert len(slots) == 15

    def test_custom_workdays(self):
        """Test a Saturday-only policy."""
        generator = SlotGenerator(policy=BusinessHoursPolicy(workdays={5}, open_hour=10, close_hour=12))

        slots = generator.generate_available(
            start_date=pendulum.date(2025, 11, 10),
            end_date=pendulum.date(2025, 11, 16),
            booked_timestamps=set(),
            now=pendulum.parse("2025-11-01 00:00", tz="UTC"),
        )

        assert [_clock(slot) for slot in slots] == ["10:00", "10:30", "11:00", "11:30"]
        assert all(slot.start.weekday() == 5 for slot in slots)

    def test_idempotent(self):
        """Test that identical inputs give identical, identically ordered output."""
        generator = SlotGenerator(policy=BusinessHoursPolicy())
        kwargs = dict(
            start_date=pendulum.date(2025, 11, 10),
            end_date=pendulum.date(2025, 11, 21),
            booked_timestamps={pendulum.parse("2025-11-12 14:00", tz="UTC")},
            now=pendulum.parse("2025-11-11 10:10", tz="UTC"),
        )

        first = [slot.iso() for slot in generator.generate_available(**kwargs)]
        second = [slot.iso() for slot in generator.generate_available(**kwargs)]

        assert first == second


class TestSlotGeneratorProperties:
    """Invariants that hold for every generated slot."""

    @pytest.fixture(params=[10, 15, 20, 30, 60])
    def policy(self, request):
        return BusinessHoursPolicy(open_hour=8, close_hour=18, slot_minutes=request.param)

    @pytest.fixture
    def booked(self):
        return {
            pendulum.parse("2025-11-10 08:00", tz="UTC"),
            pendulum.parse("2025-11-12 12:00", tz="UTC"),
            pendulum.parse("2025-11-14 17:00", tz="UTC"),
        }

    @pytest.fixture
    def now(self):
        return pendulum.parse("2025-11-11 13:00", tz="UTC")

    @pytest.fixture
    def slots(self, policy, booked, now):
        return SlotGenerator(policy=policy).generate_available(
            start_date=pendulum.date(2025, 11, 9),
            end_date=pendulum.date(2025, 11, 23),
            booked_timestamps=booked,
            now=now,
        )

    def test_minutes_on_grid(self, slots, policy):
        """Test that every slot starts on a multiple of the slot size."""
        assert slots
        assert all(slot.start.minute % policy.slot_minutes == 0 for slot in slots)

    def test_within_hours(self, slots, policy):
        """Test that every slot starts between opening and last slot start."""
        for slot in slots:
            hour, minute = slot.start.hour, slot.start.minute
            assert policy.open_hour <= hour
            assert hour < policy.close_hour - 1 or (
                hour == policy.close_hour - 1 and minute <= 60 - policy.slot_minutes
            )

    def test_only_workdays(self, slots, policy):
        """Test that no slot lands outside the workdays."""
        assert all(slot.start.weekday() in policy.workdays for slot in slots)

    def test_not_booked(self, slots, booked):
        """Test that no booked time is offered."""
        booked_keys = {timestamp_key(ts) for ts in booked}
        assert not any(timestamp_key(slot.start) in booked_keys for slot in slots)

    def test_strictly_future(self, slots, now):
        """Test that no slot is at or before now."""
        assert all(slot.start > now for slot in slots)

    def test_chronological(self, slots):
        """Test day-major, time-minor ordering."""
        keys = [timestamp_key(slot.start) for slot in slots]
        assert keys == sorted(keys)
        assert len(set(keys)) == len(keys)
