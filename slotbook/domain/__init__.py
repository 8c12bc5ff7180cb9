"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityResolver, conflicts_with_booking, resolve_availability
from .models import (
    Booking,
    BookingStats,
    BookingStatus,
    ResolvedSlot,
    TemplateSlot,
    TimeRange,
    Venue,
    VenueSettings,
)

__all__ = [
    "AvailabilityResolver",
    "Booking",
    "BookingStats",
    "BookingStatus",
    "ResolvedSlot",
    "TemplateSlot",
    "TimeRange",
    "Venue",
    "VenueSettings",
    "conflicts_with_booking",
    "resolve_availability",
]
