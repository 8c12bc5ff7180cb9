"""
Domain models for venues, weekly templates, bookings and resolved slots.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

import pendulum
from pendulum import Date, DateTime

from .exceptions import ValidationError

TimeOfDay = Union[str, time]


class BookingStatus(str, Enum):
    """Booking statuses. Any status may be set to any other status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


def day_of_week(value: date) -> int:
    """Return the weekday with 0=Sunday..6=Saturday."""
    return value.isoweekday() % 7


def ensure_aware(value: datetime, tz: str = "UTC") -> DateTime:
    """Convert a datetime to a pendulum DateTime, reading naive values in ``tz``."""
    return pendulum.instance(value, tz=tz)


def parse_time_of_day(value: Any) -> Optional[time]:
    """
    Parse ``HH:MM`` or ``HH:MM:SS`` into a time.

    Returns None for anything that does not parse to a valid time of day.
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return None

    try:
        numbers = [int(part) for part in parts]
        return time(*numbers)
    except ValueError:
        return None


def format_time_of_day(value: time) -> str:
    """Format a time as ``HH:MM``, keeping seconds only when present."""
    if value.second:
        return value.strftime("%H:%M:%S")
    return value.strftime("%H:%M")


def parse_calendar_date(value: Union[str, date]) -> Date:
    """
    Parse a calendar date (``YYYY-MM-DD``); a time component is ignored.

    Raises:
        ValidationError: If the value is not a date
    """
    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)

    try:
        parsed = pendulum.parse(value, exact=True)
    except (ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc

    if isinstance(parsed, DateTime):
        return parsed.date()
    if isinstance(parsed, Date):
        return parsed

    raise ValidationError(f"Invalid date: {value!r}")


def parse_instant(value: Union[str, datetime]) -> DateTime:
    """Parse an ISO 8601 timestamp; naive values are read as UTC."""
    if isinstance(value, datetime):
        return ensure_aware(value)

    try:
        parsed = pendulum.parse(value, tz="UTC")
    except (ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid timestamp: {value!r}") from exc

    if not isinstance(parsed, DateTime):
        raise ValidationError(f"Invalid timestamp: {value!r}")
    return parsed


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_aware(value).to_iso8601_string()


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def contains(self, instant: DateTime) -> bool:
        """Check whether an instant falls inside the half-open range."""
        return self.start <= instant < self.end

    @classmethod
    def for_day(cls, day: date, timezone: str) -> "TimeRange":
        """Return the local calendar day ``[00:00, next 00:00)`` in a timezone."""
        start = pendulum.datetime(day.year, day.month, day.day, tz=timezone)
        return cls(start=start, end=start.add(days=1))

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass
class VenueSettings:
    """Per-venue booking rules."""
    booking_duration_minutes: int = 60
    advance_booking_days: int = 14
    cancellation_minutes: int = 120
    max_bookings_per_user: Optional[int] = None

    def __post_init__(self):
        if self.booking_duration_minutes <= 0:
            raise ValidationError("booking_duration_minutes must be greater than zero")
        if self.advance_booking_days < 0:
            raise ValidationError("advance_booking_days must not be negative")
        if self.cancellation_minutes < 0:
            raise ValidationError("cancellation_minutes must not be negative")
        if self.max_bookings_per_user is not None and self.max_bookings_per_user <= 0:
            raise ValidationError("max_bookings_per_user must be greater than zero")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "booking_duration_minutes": self.booking_duration_minutes,
            "advance_booking_days": self.advance_booking_days,
            "cancellation_minutes": self.cancellation_minutes,
        }
        if self.max_bookings_per_user is not None:
            data["max_bookings_per_user"] = self.max_bookings_per_user
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VenueSettings":
        """
        Build settings from a mapping, ignoring unknown keys.

        Raises:
            ValidationError: If a value is not an integer
        """
        defaults = cls()
        try:
            max_bookings = data.get("max_bookings_per_user")
            return cls(
                booking_duration_minutes=int(
                    data.get("booking_duration_minutes", defaults.booking_duration_minutes)
                ),
                advance_booking_days=int(
                    data.get("advance_booking_days", defaults.advance_booking_days)
                ),
                cancellation_minutes=int(
                    data.get("cancellation_minutes", defaults.cancellation_minutes)
                ),
                max_bookings_per_user=int(max_bookings) if max_bookings is not None else None,
            )
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid venue settings: {exc}") from exc


@dataclass
class Venue:
    """A bookable resource (a court, a room) with its own timezone."""
    id: str
    name: str
    timezone: str = "UTC"
    description: str = ""
    settings: VenueSettings = field(default_factory=VenueSettings)
    is_active: bool = True
    created_at: Optional[DateTime] = None
    updated_at: Optional[DateTime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "timezone": self.timezone,
            "settings": self.settings.to_dict(),
            "is_active": self.is_active,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Venue":
        created_at = data.get("created_at")
        updated_at = data.get("updated_at")
        return cls(
            id=data["id"],
            name=data["name"],
            timezone=data.get("timezone") or "UTC",
            description=data.get("description") or "",
            settings=VenueSettings.from_dict(data.get("settings") or {}),
            is_active=bool(data.get("is_active", True)),
            created_at=parse_instant(created_at) if created_at else None,
            updated_at=parse_instant(updated_at) if updated_at else None,
        )


@dataclass
class TemplateSlot:
    """
    A recurring weekly availability rule for a venue.

    ``start_time`` and ``end_time`` are local times of day. They are kept as
    stored, so a malformed row survives until the resolver skips it.
    """
    id: str
    venue_id: str
    day_of_week: int  # 0=Sunday, 6=Saturday
    start_time: TimeOfDay
    end_time: TimeOfDay
    is_available: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "day_of_week": self.day_of_week,
            "start_time": _time_text(self.start_time),
            "end_time": _time_text(self.end_time),
            "is_available": self.is_available,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TemplateSlot":
        return cls(
            id=data["id"],
            venue_id=data["venue_id"],
            day_of_week=int(data["day_of_week"]),
            start_time=data["start_time"],
            end_time=data["end_time"],
            is_available=bool(data.get("is_available", True)),
        )


def _time_text(value: TimeOfDay) -> str:
    if isinstance(value, time):
        return format_time_of_day(value)
    return str(value)


@dataclass
class Booking:
    """
    A customer's reservation of a concrete span at a venue.

    Start and end are absolute instants. Only ``status`` and ``admin_notes``
    change after creation.
    """
    id: str
    venue_id: str
    customer_name: str
    customer_email: str
    start_time: DateTime
    end_time: DateTime
    status: BookingStatus = BookingStatus.PENDING
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: Optional[DateTime] = None
    updated_at: Optional[DateTime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "start_time": _isoformat(self.start_time),
            "end_time": _isoformat(self.end_time),
            "status": BookingStatus(self.status).value,
            "notes": self.notes,
            "admin_notes": self.admin_notes,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Booking":
        created_at = data.get("created_at")
        updated_at = data.get("updated_at")
        return cls(
            id=data["id"],
            venue_id=data["venue_id"],
            customer_name=data["customer_name"],
            customer_email=data["customer_email"],
            start_time=parse_instant(data["start_time"]),
            end_time=parse_instant(data["end_time"]),
            status=BookingStatus(data.get("status", BookingStatus.PENDING.value)),
            customer_phone=data.get("customer_phone"),
            notes=data.get("notes"),
            admin_notes=data.get("admin_notes"),
            created_at=parse_instant(created_at) if created_at else None,
            updated_at=parse_instant(updated_at) if updated_at else None,
        )


@dataclass(frozen=True)
class ResolvedSlot:
    """
    A concrete window on one calendar date, derived from a template slot.
    """
    start: DateTime
    end: DateTime
    available: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": _isoformat(self.start),
            "end": _isoformat(self.end),
            "available": self.available,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResolvedSlot":
        return cls(
            start=parse_instant(data["start"]),
            end=parse_instant(data["end"]),
            available=bool(data["available"]),
        )

    def format_display(self, timezone: Optional[str] = None) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:mm – HH:mm
        """
        start = self.start.in_timezone(timezone) if timezone else self.start
        end = self.end.in_timezone(timezone) if timezone else self.end
        return f"{start.format('dddd, YYYY-MM-DD')} | {start.format('HH:mm')} – {end.format('HH:mm')}"


@dataclass
class BookingStats:
    """Booking counters for an operator dashboard."""
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    cancelled: int = 0
    today_bookings: int = 0
    week_bookings: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "confirmed": self.confirmed,
            "cancelled": self.cancelled,
            "today_bookings": self.today_bookings,
            "week_bookings": self.week_bookings,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BookingStats":
        return cls(**{key: int(data.get(key, 0)) for key in cls().to_dict()})
