"""
Tests for the availability resolver - the core business logic.
"""

from datetime import time

import pendulum
import pytest

from slotbook.domain.availability import (
    AvailabilityResolver,
    conflicts_with_booking,
    resolve_availability,
)
from slotbook.domain.models import Booking, BookingStatus, TemplateSlot

MONDAY = pendulum.date(2024, 1, 15)
EARLY = pendulum.parse("2024-01-15 00:00", tz="UTC")


def make_slot(start, end, day=1, slot_id=None, available=True):
    return TemplateSlot(
        id=slot_id or f"slot-{day}-{start}",
        venue_id="venue-1",
        day_of_week=day,
        start_time=start,
        end_time=end,
        is_available=available,
    )


def make_booking(start, end, status=BookingStatus.CONFIRMED, tz="UTC"):
    return Booking(
        id=f"booking-{start}",
        venue_id="venue-1",
        customer_name="Test Customer",
        customer_email="test@example.com",
        start_time=pendulum.parse(start, tz=tz),
        end_time=pendulum.parse(end, tz=tz),
        status=status,
    )


class TestAvailabilityResolver:
    """Tests for AvailabilityResolver."""

    @pytest.fixture
    def resolver(self):
        return AvailabilityResolver(timezone="UTC")

    def test_no_bookings_all_slots_available(self, resolver):
        """Test that every matching slot is available when nothing is booked."""
        slots = [make_slot("09:00", "10:00"), make_slot("10:00", "11:00")]

        result = resolver.resolve(slots, [], MONDAY, EARLY)

        assert len(result) == 2
        assert all(slot.available for slot in result)
        assert result[0].start == pendulum.parse("2024-01-15 09:00", tz="UTC")
        assert result[0].end == pendulum.parse("2024-01-15 10:00", tz="UTC")

    def test_other_weekdays_are_ignored(self, resolver):
        """Test that a template for Tuesday yields nothing on a Monday."""
        slots = [make_slot("09:00", "10:00", day=2)]

        assert resolver.resolve(slots, [], MONDAY, EARLY) == []

    def test_sunday_is_day_zero(self, resolver):
        sunday = pendulum.date(2024, 1, 14)
        slots = [make_slot("09:00", "10:00", day=0), make_slot("09:00", "10:00", day=7)]

        result = resolver.resolve(slots, [], sunday, pendulum.parse("2024-01-14 00:00", tz="UTC"))

        assert len(result) == 1

    def test_unavailable_templates_are_ignored(self, resolver):
        slots = [make_slot("09:00", "10:00", available=False), make_slot("10:00", "11:00")]

        result = resolver.resolve(slots, [], MONDAY, EARLY)

        assert [slot.start.hour for slot in result] == [10]

    def test_windows_that_started_are_omitted(self, resolver):
        """Test that windows starting before now are dropped, one starting at now is kept."""
        slots = [make_slot("09:00", "10:00"), make_slot("10:00", "11:00")]
        now = pendulum.parse("2024-01-15T10:00:00Z")

        result = resolver.resolve(slots, [], MONDAY, now)

        assert len(result) == 1
        assert result[0].start == now

    def test_window_in_progress_is_omitted(self, resolver):
        slots = [make_slot("09:00", "10:00")]
        now = pendulum.parse("2024-01-15T09:30:00Z")

        assert resolver.resolve(slots, [], MONDAY, now) == []

    def test_booking_covering_slot_start_conflicts(self, resolver):
        """A booking that contains the window's start makes it unavailable."""
        slots = [make_slot("09:45", "10:15")]
        bookings = [make_booking("2024-01-15 10:00", "2024-01-15 10:30")]

        result = resolver.resolve(slots, bookings, MONDAY, EARLY)

        # Window end 10:15 lies inside (10:00, 10:30]
        assert len(result) == 1
        assert result[0].available is False

    def test_window_containing_shorter_booking_stays_available(self, resolver):
        """Neither endpoint of 09:30-11:00 lies inside a 10:00-10:30 booking."""
        slots = [make_slot("09:30", "11:00")]
        bookings = [make_booking("2024-01-15 10:00", "2024-01-15 10:30")]

        result = resolver.resolve(slots, bookings, MONDAY, EARLY)

        assert len(result) == 1
        assert result[0].available is True

    def test_identical_booking_conflicts(self, resolver):
        slots = [make_slot("09:00", "10:00")]
        bookings = [make_booking("2024-01-15 09:00", "2024-01-15 10:00", BookingStatus.PENDING)]

        result = resolver.resolve(slots, bookings, MONDAY, EARLY)

        assert result[0].available is False

    def test_adjacent_booking_does_not_conflict(self, resolver):
        slots = [make_slot("10:00", "11:00")]
        bookings = [make_booking("2024-01-15 09:00", "2024-01-15 10:00")]

        result = resolver.resolve(slots, bookings, MONDAY, EARLY)

        assert result[0].available is True

    def test_cancelled_bookings_are_ignored(self, resolver):
        """Test that a cancelled booking frees its window."""
        slots = [make_slot("09:00", "10:00")]
        bookings = [make_booking("2024-01-15 09:00", "2024-01-15 10:00", BookingStatus.CANCELLED)]

        result = resolver.resolve(slots, bookings, MONDAY, EARLY)

        assert result[0].available is True

    @pytest.mark.parametrize(
        "start, end",
        [
            ("bad", "10:00"),
            ("9", "10:00"),
            ("25:00", "26:00"),
            ("10:00", "09:00"),
            ("10:00", "10:00"),
        ],
    )
    def test_malformed_templates_are_skipped(self, resolver, start, end):
        """Test that a broken row is dropped without affecting the rest."""
        slots = [make_slot(start, end, slot_id="broken"), make_slot("11:00", "12:00")]

        result = resolver.resolve(slots, [], MONDAY, EARLY)

        assert len(result) == 1
        assert result[0].start.hour == 11

    def test_time_objects_and_seconds(self, resolver):
        """Seconds in a template time are dropped when the window is placed."""
        slots = [make_slot(time(9, 0), time(10, 0)), make_slot("11:00:30", "12:00:00")]

        result = resolver.resolve(slots, [], MONDAY, EARLY)

        assert len(result) == 2
        assert result[1].start == pendulum.parse("2024-01-15 11:00", tz="UTC")

    def test_output_keeps_input_order(self, resolver):
        slots = [make_slot("15:00", "16:00"), make_slot("09:00", "10:00"), make_slot("12:00", "13:00")]

        result = resolver.resolve(slots, [], MONDAY, EARLY)

        assert [slot.start.hour for slot in result] == [15, 9, 12]

    def test_resolving_twice_gives_same_result(self, resolver):
        slots = [make_slot("09:00", "10:00"), make_slot("10:00", "11:00")]
        bookings = [make_booking("2024-01-15 09:00", "2024-01-15 10:00")]

        first = resolver.resolve(slots, bookings, MONDAY, EARLY)
        second = resolver.resolve(slots, bookings, MONDAY, EARLY)

        assert first == second

    def test_target_date_time_of_day_is_ignored(self, resolver):
        slots = [make_slot("09:00", "10:00")]
        target = pendulum.parse("2024-01-15 22:30", tz="UTC")

        result = resolver.resolve(slots, [], target, EARLY)

        assert result[0].start == pendulum.parse("2024-01-15 09:00", tz="UTC")

    @pytest.mark.parametrize("missing", ["template_slots", "existing_bookings", "target_date", "now"])
    def test_missing_argument_raises_type_error(self, resolver, missing):
        kwargs = {
            "template_slots": [],
            "existing_bookings": [],
            "target_date": MONDAY,
            "now": EARLY,
        }
        kwargs[missing] = None

        with pytest.raises(TypeError):
            resolver.resolve(**kwargs)


class TestVenueTimezone:
    """Tests for windows placed in the venue's own timezone."""

    def test_monday_window_in_berlin(self):
        """A Monday 09:00-10:00 template, asked at 08:00 local, gives one free window."""
        slots = [make_slot("09:00", "10:00")]
        now = pendulum.parse("2024-11-25 08:00", tz="Europe/Berlin")

        result = resolve_availability(
            slots, [], pendulum.date(2024, 11, 25), now, timezone="Europe/Berlin"
        )

        assert len(result) == 1
        assert result[0].available is True
        assert result[0].start == pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        assert result[0].start.in_timezone("UTC").hour == 8

    def test_windows_fall_on_the_local_date(self):
        slots = [make_slot("20:00", "21:00"), make_slot("23:00", "23:59")]
        now = pendulum.parse("2024-11-25 00:00", tz="America/New_York")

        result = resolve_availability(
            slots, [], pendulum.date(2024, 11, 25), now, timezone="America/New_York"
        )

        for slot in result:
            assert slot.start.in_timezone("America/New_York").date() == pendulum.date(2024, 11, 25)
            assert slot.start < slot.end

    def test_booking_in_other_timezone_conflicts(self):
        """Instants are compared, not wall clocks."""
        slots = [make_slot("09:00", "10:00")]
        bookings = [make_booking("2024-11-25 08:00", "2024-11-25 09:00", tz="UTC")]
        now = pendulum.parse("2024-11-25 00:00", tz="Europe/Berlin")

        result = resolve_availability(
            slots, bookings, pendulum.date(2024, 11, 25), now, timezone="Europe/Berlin"
        )

        assert result[0].available is False


class TestConflictsWithBooking:
    """Tests for the window/booking collision rule."""

    @pytest.fixture
    def booking(self):
        return make_booking("2024-01-15 10:00", "2024-01-15 10:30")

    @pytest.mark.parametrize(
        "start, end, expected",
        [
            ("10:00", "10:30", True),
            ("10:15", "11:00", True),
            ("09:45", "10:15", True),
            ("09:30", "10:30", True),
            ("09:30", "11:00", False),
            ("09:00", "10:00", False),
            ("10:30", "11:00", False),
        ],
    )
    def test_collision(self, booking, start, end, expected):
        slot_start = pendulum.parse(f"2024-01-15 {start}", tz="UTC")
        slot_end = pendulum.parse(f"2024-01-15 {end}", tz="UTC")

        assert conflicts_with_booking(slot_start, slot_end, booking) is expected

    def test_cancelled_booking_never_collides(self, booking):
        booking.status = BookingStatus.CANCELLED
        slot_start = pendulum.parse("2024-01-15 10:00", tz="UTC")

        assert conflicts_with_booking(slot_start, slot_start.add(minutes=30), booking) is False
