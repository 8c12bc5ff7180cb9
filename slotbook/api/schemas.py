"""
Request bodies accepted by the HTTP API.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..domain.models import BookingStatus


class VenueSettingsPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    booking_duration_minutes: int = 60
    advance_booking_days: int = 14
    cancellation_minutes: int = 120
    max_bookings_per_user: Optional[int] = None


class VenueCreate(BaseModel):
    name: str
    timezone: str
    description: str = ""
    settings: Optional[VenueSettingsPayload] = None


class VenueUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    timezone: Optional[str] = None
    settings: Optional[VenueSettingsPayload] = None


class TemplateSlotCreate(BaseModel):
    day_of_week: int
    start_time: str
    end_time: str
    is_available: bool = True


class TemplateSlotUpdate(BaseModel):
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_available: Optional[bool] = None


class BookingCreate(BaseModel):
    customer_name: str
    customer_email: str
    start_time: datetime
    end_time: datetime
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    admin_notes: Optional[str] = None
