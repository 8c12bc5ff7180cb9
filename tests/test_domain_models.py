"""
Tests for domain models and time helpers.
"""

from datetime import time

import pendulum
import pytest

from slotbook.domain.exceptions import ValidationError
from slotbook.domain.models import (
    Booking,
    BookingStatus,
    ResolvedSlot,
    TimeRange,
    VenueSettings,
    day_of_week,
    format_time_of_day,
    parse_calendar_date,
    parse_time_of_day,
)


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")

        tr = TimeRange(start=start, end=end)

        assert tr.start == start
        assert tr.end == end
        assert tr.contains(pendulum.parse("2024-11-25 16:59", tz="Europe/Berlin"))

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises ValueError."""
        start = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")

        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=start, end=end)

    def test_contains_is_half_open(self):
        tr = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz="UTC"),
            end=pendulum.parse("2024-11-25 10:00", tz="UTC"),
        )

        assert tr.contains(pendulum.parse("2024-11-25 09:00", tz="UTC"))
        assert tr.contains(pendulum.parse("2024-11-25 09:59", tz="UTC"))
        assert not tr.contains(pendulum.parse("2024-11-25 10:00", tz="UTC"))

    def test_for_day_uses_local_midnight(self):
        """The local day of New York starts at 05:00 UTC in winter."""
        day = TimeRange.for_day(pendulum.date(2024, 11, 25), "America/New_York")

        assert day.start.in_timezone("UTC") == pendulum.datetime(2024, 11, 25, 5, tz="UTC")
        assert day.end == pendulum.datetime(2024, 11, 26, tz="America/New_York")


class TestTimeHelpers:
    """Tests for weekday and time-of-day parsing."""

    def test_day_of_week_starts_on_sunday(self):
        assert day_of_week(pendulum.date(2024, 11, 24)) == 0  # Sunday
        assert day_of_week(pendulum.date(2024, 11, 25)) == 1  # Monday
        assert day_of_week(pendulum.date(2024, 11, 30)) == 6  # Saturday

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("09:00", time(9, 0)),
            ("09:30:15", time(9, 30, 15)),
            (" 7:05 ", time(7, 5)),
            (time(18, 0), time(18, 0)),
        ],
    )
    def test_parse_time_of_day_accepts(self, value, expected):
        assert parse_time_of_day(value) == expected

    @pytest.mark.parametrize("value", ["bad", "9", "25:00", "10:61", "a:b", "", None, 900])
    def test_parse_time_of_day_rejects(self, value):
        assert parse_time_of_day(value) is None

    def test_format_time_of_day_keeps_seconds_only_when_set(self):
        assert format_time_of_day(time(9, 0)) == "09:00"
        assert format_time_of_day(time(9, 0, 30)) == "09:00:30"

    def test_parse_calendar_date_ignores_time(self):
        assert parse_calendar_date("2024-11-25") == pendulum.date(2024, 11, 25)
        assert parse_calendar_date("2024-11-25T23:30:00") == pendulum.date(2024, 11, 25)

    def test_parse_calendar_date_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_calendar_date("not-a-date")


class TestVenueSettings:
    """Tests for VenueSettings validation."""

    def test_from_dict_ignores_unknown_keys(self):
        settings = VenueSettings.from_dict(
            {"booking_duration_minutes": "30", "requires_approval": True}
        )

        assert settings.booking_duration_minutes == 30
        assert settings.advance_booking_days == 14
        assert settings.max_bookings_per_user is None

    def test_non_positive_duration_is_rejected(self):
        with pytest.raises(ValidationError):
            VenueSettings(booking_duration_minutes=0)

    def test_non_numeric_value_is_rejected(self):
        with pytest.raises(ValidationError):
            VenueSettings.from_dict({"advance_booking_days": "two weeks"})


class TestSerialisation:
    """Tests for dictionary conversion of bookings and resolved slots."""

    def test_booking_dict_uses_iso_timestamps(self):
        booking = Booking(
            id="b-1",
            venue_id="v-1",
            customer_name="Ada",
            customer_email="ada@example.com",
            start_time=pendulum.parse("2024-11-25 10:00", tz="UTC"),
            end_time=pendulum.parse("2024-11-25 11:00", tz="UTC"),
            status=BookingStatus.CONFIRMED,
        )

        data = booking.to_dict()

        assert data["start_time"] == "2024-11-25T10:00:00Z"
        assert data["status"] == "confirmed"
        assert Booking.from_dict(data).start_time == booking.start_time

    def test_resolved_slot_display(self):
        slot = ResolvedSlot(
            start=pendulum.parse("2024-11-25 14:00", tz="UTC"),
            end=pendulum.parse("2024-11-25 15:00", tz="UTC"),
            available=True,
        )

        assert slot.format_display("America/New_York") == "Monday, 2024-11-25 | 09:00 – 10:00"
