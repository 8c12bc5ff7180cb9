"""
Demo venue shared by every store's optional seeding step.
"""

from typing import List

import pendulum

from ..domain.models import TemplateSlot, Venue, VenueSettings

DEMO_VENUE_ID = "demo-tennis-court"


def demo_venue() -> Venue:
    """Build the demo tennis court."""
    now = pendulum.now("UTC")
    return Venue(
        id=DEMO_VENUE_ID,
        name="Community Tennis Court",
        description="Local tennis court available for booking",
        timezone="America/New_York",
        settings=VenueSettings(
            booking_duration_minutes=60,
            advance_booking_days=14,
            cancellation_minutes=120,
            max_bookings_per_user=2,
        ),
        created_at=now,
        updated_at=now,
    )


def demo_template_slots() -> List[TemplateSlot]:
    """
    Hourly slots for the demo venue.

    Monday to Friday 09:00-18:00, Saturday and Sunday 08:00-20:00.
    """
    slots: List[TemplateSlot] = []

    for day in range(1, 6):
        slots.extend(_hourly(day, 9, 18))

    for day in (0, 6):
        slots.extend(_hourly(day, 8, 20))

    return slots


def _hourly(day: int, first_hour: int, last_hour: int) -> List[TemplateSlot]:
    return [
        TemplateSlot(
            id=f"slot-{day}-{hour}",
            venue_id=DEMO_VENUE_ID,
            day_of_week=day,
            start_time=f"{hour:02d}:00",
            end_time=f"{hour + 1:02d}:00",
        )
        for hour in range(first_hour, last_hour)
    ]
