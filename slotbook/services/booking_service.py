"""
Application services for venues, weekly templates and bookings.

The service fetches rows through a store adapter and delegates the actual
availability calculation to the domain-level ``AvailabilityResolver``. Each
store only shapes data; none of them computes availability itself.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, List, Mapping, Optional, Protocol, Union

import pendulum
from pendulum import DateTime

from ..domain.availability import AvailabilityResolver
from ..domain.exceptions import (
    BookingNotFoundError,
    TemplateSlotNotFoundError,
    ValidationError,
    VenueNotFoundError,
)
from ..domain.models import (
    Booking,
    BookingStats,
    BookingStatus,
    ResolvedSlot,
    TemplateSlot,
    TimeRange,
    Venue,
    VenueSettings,
    ensure_aware,
    format_time_of_day,
    parse_calendar_date,
    parse_time_of_day,
)

logger = logging.getLogger(__name__)

SettingsInput = Union[VenueSettings, Mapping[str, Any]]


class BookingStoreProtocol(Protocol):
    """Protocol describing the store behaviour needed by the service."""

    def get_venue(self, venue_id: str) -> Optional[Venue]: ...

    def list_venues(self) -> List[Venue]: ...

    def create_venue(self, venue: Venue) -> Venue: ...

    def update_venue(
        self,
        venue_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        timezone: Optional[str] = None,
        settings: Optional[VenueSettings] = None,
    ) -> Optional[Venue]: ...

    def deactivate_venue(self, venue_id: str) -> bool: ...

    def list_template_slots(self, venue_id: str, *, available_only: bool = False) -> List[TemplateSlot]: ...

    def get_template_slot(self, slot_id: str) -> Optional[TemplateSlot]: ...

    def create_template_slot(self, slot: TemplateSlot) -> TemplateSlot: ...

    def update_template_slot(
        self,
        slot_id: str,
        *,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        is_available: Optional[bool] = None,
    ) -> Optional[TemplateSlot]: ...

    def delete_template_slot(self, slot_id: str) -> bool: ...

    def list_bookings(
        self,
        venue_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]: ...

    def bookings_starting_between(self, venue_id: str, start: datetime, end: datetime) -> List[Booking]: ...

    def get_booking(self, booking_id: str) -> Optional[Booking]: ...

    def create_booking(self, booking: Booking) -> Booking: ...

    def update_booking_status(
        self,
        booking_id: str,
        status: BookingStatus,
        admin_notes: Optional[str] = None,
    ) -> Optional[Booking]: ...


def validate_timezone(name: Optional[str]) -> str:
    """Ensure a timezone is a known IANA name."""
    if not name:
        raise ValidationError("timezone is required")
    try:
        pendulum.timezone(name)
    except (ValueError, KeyError) as exc:
        raise ValidationError(f"Unknown timezone: {name}") from exc
    return name


class BookingService:
    """
    Orchestrates store access, validation and availability resolution.

    The clock is injectable so availability and statistics are deterministic
    under test.
    """

    def __init__(
        self,
        store: BookingStoreProtocol,
        *,
        default_settings: Optional[VenueSettings] = None,
        clock: Optional[Callable[[], DateTime]] = None,
    ) -> None:
        self._store = store
        self._default_settings = default_settings or VenueSettings(max_bookings_per_user=2)
        self._clock = clock or (lambda: pendulum.now("UTC"))

    # ------------------------------------------------------------------
    # Venues
    # ------------------------------------------------------------------

    def list_venues(self) -> List[Venue]:
        return self._store.list_venues()

    def get_venue(self, venue_id: str) -> Venue:
        venue = self._store.get_venue(venue_id)
        if venue is None:
            raise VenueNotFoundError(f"Venue not found: {venue_id}")
        return venue

    def create_venue(
        self,
        *,
        name: str,
        timezone: str,
        description: str = "",
        settings: Optional[SettingsInput] = None,
    ) -> Venue:
        if not name or not name.strip():
            raise ValidationError("Name and timezone are required")

        venue = Venue(
            id="",
            name=name.strip(),
            timezone=validate_timezone(timezone),
            description=description or "",
            settings=self._coerce_settings(settings) if settings is not None
            else VenueSettings(**self._default_settings.to_dict()),
        )
        venue = self._store.create_venue(venue)
        logger.info("Created venue %s (%s)", venue.id, venue.name)
        return venue

    def update_venue(
        self,
        venue_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        timezone: Optional[str] = None,
        settings: Optional[SettingsInput] = None,
    ) -> Venue:
        venue = self._store.update_venue(
            venue_id,
            name=name.strip() if name else None,
            description=description,
            timezone=validate_timezone(timezone) if timezone else None,
            settings=self._coerce_settings(settings) if settings is not None else None,
        )
        if venue is None:
            raise VenueNotFoundError(f"Venue not found: {venue_id}")
        return venue

    def deactivate_venue(self, venue_id: str) -> None:
        if not self._store.deactivate_venue(venue_id):
            raise VenueNotFoundError(f"Venue not found: {venue_id}")
        logger.info("Deactivated venue %s", venue_id)

    @staticmethod
    def _coerce_settings(settings: SettingsInput) -> VenueSettings:
        if isinstance(settings, VenueSettings):
            return settings
        if isinstance(settings, Mapping):
            return VenueSettings.from_dict(settings)
        raise ValidationError("settings must be a mapping")

    # ------------------------------------------------------------------
    # Weekly template slots
    # ------------------------------------------------------------------

    def list_template_slots(self, venue_id: str, *, available_only: bool = False) -> List[TemplateSlot]:
        self.get_venue(venue_id)
        return self._store.list_template_slots(venue_id, available_only=available_only)

    def create_template_slot(
        self,
        venue_id: str,
        *,
        day_of_week: int,
        start_time: Any,
        end_time: Any,
        is_available: bool = True,
    ) -> TemplateSlot:
        self.get_venue(venue_id)

        try:
            weekday = int(day_of_week)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"day_of_week must be an integer, got {day_of_week!r}") from exc
        if not 0 <= weekday <= 6:
            raise ValidationError(f"day_of_week must be between 0 and 6, got {weekday}")

        start_text, end_text = self._validate_slot_times(start_time, end_time)

        slot = TemplateSlot(
            id="",
            venue_id=venue_id,
            day_of_week=weekday,
            start_time=start_text,
            end_time=end_text,
            is_available=bool(is_available),
        )
        return self._store.create_template_slot(slot)

    def update_template_slot(
        self,
        venue_id: str,
        slot_id: str,
        *,
        start_time: Any = None,
        end_time: Any = None,
        is_available: Optional[bool] = None,
    ) -> TemplateSlot:
        current = self._get_owned_slot(venue_id, slot_id)

        start_text: Optional[str] = None
        end_text: Optional[str] = None
        if start_time or end_time:
            start_text, end_text = self._validate_slot_times(
                start_time or current.start_time,
                end_time or current.end_time,
            )

        slot = self._store.update_template_slot(
            slot_id,
            start_time=start_text,
            end_time=end_text,
            is_available=is_available,
        )
        if slot is None:
            raise TemplateSlotNotFoundError(f"Time slot not found: {slot_id}")
        return slot

    def delete_template_slot(self, venue_id: str, slot_id: str) -> None:
        self._get_owned_slot(venue_id, slot_id)
        if not self._store.delete_template_slot(slot_id):
            raise TemplateSlotNotFoundError(f"Time slot not found: {slot_id}")

    def _get_owned_slot(self, venue_id: str, slot_id: str) -> TemplateSlot:
        slot = self._store.get_template_slot(slot_id)
        if slot is None or slot.venue_id != venue_id:
            raise TemplateSlotNotFoundError(f"Time slot not found: {slot_id}")
        return slot

    @staticmethod
    def _validate_slot_times(start_time: Any, end_time: Any) -> tuple[str, str]:
        start = parse_time_of_day(start_time)
        end = parse_time_of_day(end_time)

        if start is None or end is None:
            raise ValidationError(
                f"start_time and end_time must be HH:MM or HH:MM:SS, got {start_time!r} and {end_time!r}"
            )
        if start >= end:
            raise ValidationError("start_time must be before end_time")

        return format_time_of_day(start), format_time_of_day(end)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def available_slots(
        self,
        venue_id: str,
        target_date: Union[date, str],
        now: Optional[datetime] = None,
    ) -> List[ResolvedSlot]:
        """
        Resolve the bookable windows of a venue for one calendar date.

        The date is taken as a calendar day in the venue's timezone. Results
        are only valid for ``now``; later calls may omit windows that have
        started in the meantime.

        Raises:
            VenueNotFoundError: If the venue is unknown or inactive
        """
        venue = self.get_venue(venue_id)
        day = parse_calendar_date(target_date)
        local_day = TimeRange.for_day(day, venue.timezone)

        template_slots = self._store.list_template_slots(venue_id)
        bookings = self._store.bookings_starting_between(venue_id, local_day.start, local_day.end)

        return AvailabilityResolver(timezone=venue.timezone).resolve(
            template_slots=template_slots,
            existing_bookings=bookings,
            target_date=day,
            now=now if now is not None else self._clock(),
        )

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def list_bookings(
        self,
        venue_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        self.get_venue(venue_id)
        return self._store.list_bookings(venue_id, start=start, end=end)

    def get_booking(self, venue_id: str, booking_id: str) -> Booking:
        booking = self._store.get_booking(booking_id)
        if booking is None or booking.venue_id != venue_id:
            raise BookingNotFoundError(f"Booking not found: {booking_id}")
        return booking

    def create_booking(
        self,
        venue_id: str,
        *,
        customer_name: str,
        customer_email: str,
        start_time: datetime,
        end_time: datetime,
        customer_phone: Optional[str] = None,
        notes: Optional[str] = None,
        status: Union[BookingStatus, str] = BookingStatus.PENDING,
    ) -> Booking:
        """
        Record a booking.

        Availability is not re-checked here; two callers that both saw a
        window as available can both book it.

        Raises:
            ValidationError: If required fields are missing or inconsistent
            VenueNotFoundError: If the venue is unknown or inactive
        """
        if not customer_name or not customer_email or start_time is None or end_time is None:
            raise ValidationError(
                "customer_name, customer_email, start_time, and end_time are required"
            )
        if "@" not in customer_email:
            raise ValidationError(f"Invalid email address: {customer_email}")

        start = ensure_aware(start_time)
        end = ensure_aware(end_time)
        if start >= end:
            raise ValidationError(f"Start time {start} must be before end time {end}")

        self.get_venue(venue_id)

        booking = Booking(
            id="",
            venue_id=venue_id,
            customer_name=customer_name.strip(),
            customer_email=customer_email.strip().lower(),
            customer_phone=customer_phone or None,
            start_time=start.in_timezone("UTC"),
            end_time=end.in_timezone("UTC"),
            status=self._coerce_status(status),
            notes=notes or None,
        )
        booking = self._store.create_booking(booking)
        logger.info("Created booking %s for venue %s at %s", booking.id, venue_id, booking.start_time)
        return booking

    def update_booking_status(
        self,
        venue_id: str,
        booking_id: str,
        status: Union[BookingStatus, str],
        admin_notes: Optional[str] = None,
    ) -> Booking:
        """Set a booking's status; every status may follow every other."""
        new_status = self._coerce_status(status)
        self.get_booking(venue_id, booking_id)

        booking = self._store.update_booking_status(booking_id, new_status, admin_notes)
        if booking is None:
            raise BookingNotFoundError(f"Booking not found: {booking_id}")

        logger.info("Booking %s is now %s", booking_id, new_status.value)
        return booking

    def cancel_booking(self, venue_id: str, booking_id: str) -> Booking:
        return self.update_booking_status(venue_id, booking_id, BookingStatus.CANCELLED)

    @staticmethod
    def _coerce_status(status: Union[BookingStatus, str]) -> BookingStatus:
        try:
            return BookingStatus(status)
        except ValueError as exc:
            raise ValidationError(
                "Valid status is required (pending, confirmed, cancelled)"
            ) from exc

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def booking_stats(self, venue_id: str, now: Optional[datetime] = None) -> BookingStats:
        """
        Count bookings per status, today (venue-local day) and in the last 7 days.
        """
        venue = self.get_venue(venue_id)
        current = ensure_aware(now if now is not None else self._clock())
        today = TimeRange.for_day(current.in_timezone(venue.timezone).date(), venue.timezone)
        week_ago = current.subtract(days=7)

        stats = BookingStats()
        for booking in self._store.list_bookings(venue_id):
            stats.total += 1
            if booking.status == BookingStatus.PENDING:
                stats.pending += 1
            elif booking.status == BookingStatus.CONFIRMED:
                stats.confirmed += 1
            elif booking.status == BookingStatus.CANCELLED:
                stats.cancelled += 1

            if today.contains(booking.start_time):
                stats.today_bookings += 1
            if booking.start_time >= week_ago:
                stats.week_bookings += 1

        return stats
