"""
HTTP API for the booking widget and the admin console.

Public endpoints serve venues, weekly templates and resolved availability,
and accept new bookings. Operator endpoints require the ``X-Admin-Token``
header to match the configured token.

Router Endpoints:
    GET    /health
    GET    /api/venues
    POST   /api/venues                                      (admin)
    GET    /api/venues/{venue_id}
    PUT    /api/venues/{venue_id}                           (admin)
    DELETE /api/venues/{venue_id}                           (admin)
    GET    /api/venues/{venue_id}/timeslots
    POST   /api/venues/{venue_id}/timeslots                 (admin)
    PUT    /api/venues/{venue_id}/timeslots/{slot_id}       (admin)
    DELETE /api/venues/{venue_id}/timeslots/{slot_id}       (admin)
    GET    /api/venues/{venue_id}/availability?date=YYYY-MM-DD
    GET    /api/venues/{venue_id}/bookings                  (admin)
    POST   /api/venues/{venue_id}/bookings
    PUT    /api/venues/{venue_id}/bookings/{booking_id}     (admin)
"""

import logging
import secrets
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..adapters.factory import BookingStore, build_store
from ..config import AppConfig
from ..domain.exceptions import (
    AuthenticationError,
    NotFoundError,
    SlotbookError,
    ValidationError,
)
from ..domain.models import parse_instant
from ..services.booking_service import BookingService
from .schemas import (
    BookingCreate,
    BookingStatusUpdate,
    TemplateSlotCreate,
    TemplateSlotUpdate,
    VenueCreate,
    VenueUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (NotFoundError, 404),
)


def get_service(request: Request) -> BookingService:
    return request.app.state.service


def require_admin(
    request: Request,
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> None:
    """Reject the request unless it carries the configured operator token."""
    expected = request.app.state.admin_token
    if not expected:
        raise AuthenticationError("Admin access is not configured")
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise AuthenticationError("Invalid admin token")


SUCCESS: Dict[str, bool] = {"success": True}


@router.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "version": __version__}


# ----------------------------------------------------------------------
# Venues
# ----------------------------------------------------------------------

@router.get("/api/venues")
def list_venues(service: BookingService = Depends(get_service)) -> List[Dict[str, Any]]:
    return [venue.to_dict() for venue in service.list_venues()]


@router.post("/api/venues", status_code=201, dependencies=[Depends(require_admin)])
def create_venue(
    body: VenueCreate,
    service: BookingService = Depends(get_service),
) -> Dict[str, Any]:
    venue = service.create_venue(
        name=body.name,
        timezone=body.timezone,
        description=body.description,
        settings=body.settings.model_dump(exclude_none=True) if body.settings else None,
    )
    return venue.to_dict()


@router.get("/api/venues/{venue_id}")
def get_venue(venue_id: str, service: BookingService = Depends(get_service)) -> Dict[str, Any]:
    return service.get_venue(venue_id).to_dict()


@router.put("/api/venues/{venue_id}", dependencies=[Depends(require_admin)])
def update_venue(
    venue_id: str,
    body: VenueUpdate,
    service: BookingService = Depends(get_service),
) -> Dict[str, bool]:
    service.update_venue(
        venue_id,
        name=body.name,
        description=body.description,
        timezone=body.timezone,
        settings=body.settings.model_dump(exclude_none=True) if body.settings else None,
    )
    return SUCCESS


@router.delete("/api/venues/{venue_id}", dependencies=[Depends(require_admin)])
def deactivate_venue(venue_id: str, service: BookingService = Depends(get_service)) -> Dict[str, bool]:
    service.deactivate_venue(venue_id)
    return SUCCESS


# ----------------------------------------------------------------------
# Weekly template slots
# ----------------------------------------------------------------------

@router.get("/api/venues/{venue_id}/timeslots")
def list_time_slots(
    venue_id: str,
    include_unavailable: bool = Query(default=False),
    service: BookingService = Depends(get_service),
) -> List[Dict[str, Any]]:
    slots = service.list_template_slots(venue_id, available_only=not include_unavailable)
    return [slot.to_dict() for slot in slots]


@router.post(
    "/api/venues/{venue_id}/timeslots",
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_time_slot(
    venue_id: str,
    body: TemplateSlotCreate,
    service: BookingService = Depends(get_service),
) -> Dict[str, Any]:
    slot = service.create_template_slot(
        venue_id,
        day_of_week=body.day_of_week,
        start_time=body.start_time,
        end_time=body.end_time,
        is_available=body.is_available,
    )
    return slot.to_dict()


@router.put("/api/venues/{venue_id}/timeslots/{slot_id}", dependencies=[Depends(require_admin)])
def update_time_slot(
    venue_id: str,
    slot_id: str,
    body: TemplateSlotUpdate,
    service: BookingService = Depends(get_service),
) -> Dict[str, bool]:
    service.update_template_slot(
        venue_id,
        slot_id,
        start_time=body.start_time,
        end_time=body.end_time,
        is_available=body.is_available,
    )
    return SUCCESS


@router.delete("/api/venues/{venue_id}/timeslots/{slot_id}", dependencies=[Depends(require_admin)])
def delete_time_slot(
    venue_id: str,
    slot_id: str,
    service: BookingService = Depends(get_service),
) -> Dict[str, bool]:
    service.delete_template_slot(venue_id, slot_id)
    return SUCCESS


# ----------------------------------------------------------------------
# Availability
# ----------------------------------------------------------------------

@router.get("/api/venues/{venue_id}/availability")
def get_availability(
    venue_id: str,
    date: str = Query(..., description="Calendar date, YYYY-MM-DD"),
    service: BookingService = Depends(get_service),
) -> List[Dict[str, Any]]:
    return [slot.to_dict() for slot in service.available_slots(venue_id, date)]


# ----------------------------------------------------------------------
# Bookings
# ----------------------------------------------------------------------

@router.get("/api/venues/{venue_id}/bookings", dependencies=[Depends(require_admin)])
def list_bookings(
    venue_id: str,
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    stats: bool = Query(default=False),
    service: BookingService = Depends(get_service),
) -> Any:
    if stats:
        return service.booking_stats(venue_id).to_dict()

    bookings = service.list_bookings(
        venue_id,
        start=parse_instant(start_date) if start_date else None,
        end=parse_instant(end_date) if end_date else None,
    )
    return [booking.to_dict() for booking in bookings]


@router.post("/api/venues/{venue_id}/bookings", status_code=201)
def create_booking(
    venue_id: str,
    body: BookingCreate,
    service: BookingService = Depends(get_service),
) -> Dict[str, Any]:
    booking = service.create_booking(
        venue_id,
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        start_time=body.start_time,
        end_time=body.end_time,
        customer_phone=body.customer_phone,
        notes=body.notes,
        status=body.status,
    )
    return booking.to_dict()


@router.put("/api/venues/{venue_id}/bookings/{booking_id}", dependencies=[Depends(require_admin)])
def update_booking(
    venue_id: str,
    booking_id: str,
    body: BookingStatusUpdate,
    service: BookingService = Depends(get_service),
) -> Dict[str, bool]:
    service.update_booking_status(venue_id, booking_id, body.status, body.admin_notes)
    return SUCCESS


# ----------------------------------------------------------------------
# Application factory
# ----------------------------------------------------------------------

def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SlotbookError)
    async def handle_slotbook_error(request: Request, exc: SlotbookError) -> JSONResponse:
        for error_type, status_code in ERROR_STATUS_CODES:
            if isinstance(exc, error_type):
                return JSONResponse({"error": str(exc)}, status_code=status_code)

        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=500)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
            for error in exc.errors()
        )
        return JSONResponse({"error": problems or "Invalid request"}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(config: AppConfig, store: Optional[BookingStore] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Application configuration
        store: Already opened store; when omitted one is built from the
            config and opened/closed with the application lifespan

    Returns:
        FastAPI application
    """
    owns_store = store is None
    active_store = store if store is not None else build_store(config.storage)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_store:
            active_store.open()
        try:
            yield
        finally:
            if owns_store:
                active_store.close()

    app = FastAPI(title="slotbook", version=__version__, lifespan=lifespan)
    app.state.service = BookingService(
        active_store,
        default_settings=config.venue_defaults.to_settings(),
    )
    app.state.admin_token = config.api.admin_token

    _register_exception_handlers(app)
    app.include_router(router)

    return app
