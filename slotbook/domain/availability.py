"""
Core business logic for resolving bookable windows on a calendar date.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O). Every store
feeds the same resolver; none of them derives availability itself.
"""

import logging
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from .models import (
    Booking,
    BookingStatus,
    ResolvedSlot,
    TemplateSlot,
    day_of_week,
    ensure_aware,
    parse_time_of_day,
)

logger = logging.getLogger(__name__)


def conflicts_with_booking(slot_start: DateTime, slot_end: DateTime, booking: Booking) -> bool:
    """
    Check whether a window collides with a booking.

    A collision needs one of the window's own endpoints inside the booking:
    the start in ``[booking start, booking end)`` or the end in
    ``(booking start, booking end]``. A window that fully contains a shorter
    booking therefore does NOT collide. Cancelled bookings never collide.
    """
    if booking.status == BookingStatus.CANCELLED:
        return False

    booking_start = ensure_aware(booking.start_time)
    booking_end = ensure_aware(booking.end_time)

    return (
        (slot_start >= booking_start and slot_start < booking_end)
        or (slot_end > booking_start and slot_end <= booking_end)
    )


class AvailabilityResolver:
    """
    Turns a venue's weekly template slots into concrete windows for one date.

    Algorithm:
    1. Keep available template slots whose weekday matches the date
    2. Materialize each one on the date in the venue timezone
    3. Drop windows that do not parse or that started before ``now``
    4. Flag windows that collide with a non-cancelled booking

    Output order follows the input order of the template slots.
    """

    def __init__(self, timezone: str = "UTC"):
        self.timezone = timezone

    def resolve(
        self,
        template_slots: Iterable[TemplateSlot],
        existing_bookings: Iterable[Booking],
        target_date: date,
        now: datetime,
    ) -> List[ResolvedSlot]:
        """
        Resolve the bookable windows for a date.

        Args:
            template_slots: All weekly template rows of the venue
            existing_bookings: Bookings of the venue starting on the date
            target_date: Calendar date; any time-of-day part is ignored
            now: Current instant; windows starting before it are omitted

        Returns:
            List of ResolvedSlot objects, conflicted ones marked unavailable

        Raises:
            TypeError: If a required argument is None
        """
        if template_slots is None:
            raise TypeError("template_slots is required")
        if existing_bookings is None:
            raise TypeError("existing_bookings is required")
        if target_date is None:
            raise TypeError("target_date is required")
        if now is None:
            raise TypeError("now is required")

        now = ensure_aware(now)
        weekday = day_of_week(target_date)
        bookings = list(existing_bookings)

        resolved: List[ResolvedSlot] = []

        for slot in template_slots:
            if not slot.is_available or slot.day_of_week != weekday:
                continue

            window = self._materialize(slot, target_date)
            if window is None:
                continue

            slot_start, slot_end = window

            if slot_start < now:
                continue

            has_conflict = any(
                conflicts_with_booking(slot_start, slot_end, booking)
                for booking in bookings
            )

            resolved.append(
                ResolvedSlot(start=slot_start, end=slot_end, available=not has_conflict)
            )

        return resolved

    def _materialize(
        self,
        slot: TemplateSlot,
        target_date: date,
    ) -> Optional[Tuple[DateTime, DateTime]]:
        """
        Place a template slot on the target date.

        Returns None when the slot's times are malformed.
        """
        start_of_day = parse_time_of_day(slot.start_time)
        end_of_day = parse_time_of_day(slot.end_time)

        if start_of_day is None or end_of_day is None:
            logger.debug(
                "Skipping template slot %s: unparseable times %r-%r",
                slot.id, slot.start_time, slot.end_time,
            )
            return None

        slot_start = self._on_date(target_date, start_of_day)
        slot_end = self._on_date(target_date, end_of_day)

        if slot_start >= slot_end:
            logger.debug(
                "Skipping template slot %s: start %s is not before end %s",
                slot.id, slot_start, slot_end,
            )
            return None

        return slot_start, slot_end

    def _on_date(self, target_date: date, time_of_day: time) -> DateTime:
        # Seconds are dropped; windows start on whole minutes.
        return pendulum.datetime(
            target_date.year,
            target_date.month,
            target_date.day,
            time_of_day.hour,
            time_of_day.minute,
            tz=self.timezone,
        )


def resolve_availability(
    template_slots: Iterable[TemplateSlot],
    existing_bookings: Iterable[Booking],
    target_date: date,
    now: datetime,
    timezone: str = "UTC",
) -> List[ResolvedSlot]:
    """Resolve the bookable windows for ``target_date`` in ``timezone``."""
    return AvailabilityResolver(timezone=timezone).resolve(
        template_slots=template_slots,
        existing_bookings=existing_bookings,
        target_date=target_date,
        now=now,
    )
