"""
File-backed store keeping a JSON snapshot of venues, slots and bookings.

The whole snapshot is loaded on ``open()`` and rewritten after each change.
Queries are linear scans; suited to a single small deployment or a demo.
"""

import json
import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pendulum

from ..domain.exceptions import DuplicateTemplateSlotError, StorageError
from ..domain.models import (
    Booking,
    BookingStatus,
    TemplateSlot,
    Venue,
    VenueSettings,
    ensure_aware,
)
from .demo_data import DEMO_VENUE_ID, demo_template_slots, demo_venue

logger = logging.getLogger(__name__)

Venues = Dict[str, Venue]
TemplateSlots = Dict[str, List[TemplateSlot]]
Bookings = Dict[str, List[Booking]]


def _start_key(slot: TemplateSlot) -> str:
    return slot.to_dict()["start_time"]


class JsonBookingStore:
    """
    Booking store persisted as one JSON document.

    Layout::

        {
            "venues": {"<venue id>": {...}},
            "time_slots": {"<venue id>": [{...}, ...]},
            "bookings": {"<venue id>": [{...}, ...]}
        }

    Stored records are never modified in place. A change is made on copies of
    the containers, written to disk, and only then becomes the current state,
    so a failed write leaves memory matching the file.
    """

    def __init__(self, path: Path, *, seed_demo: bool = False):
        self.path = Path(path)
        self.seed_demo = seed_demo
        self._lock = threading.Lock()
        self._venues: Venues = {}
        self._time_slots: TemplateSlots = {}
        self._bookings: Bookings = {}
        self._opened = False

    def open(self) -> "JsonBookingStore":
        """Load the snapshot, creating the file when it does not exist yet."""
        if self._opened:
            return self

        if self.path.exists():
            self._load()
        else:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._save(self._venues, self._time_slots, self._bookings)
            logger.info("Created booking snapshot at %s", self.path)

        self._opened = True

        if self.seed_demo:
            self.seed_demo_data()

        return self

    def close(self) -> None:
        self._opened = False

    def __enter__(self) -> "JsonBookingStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Could not read booking snapshot {self.path}: {exc}") from exc

        try:
            self._venues = {
                venue_id: Venue.from_dict(venue)
                for venue_id, venue in data.get("venues", {}).items()
            }
            self._time_slots = {
                venue_id: [TemplateSlot.from_dict(slot) for slot in slots]
                for venue_id, slots in data.get("time_slots", {}).items()
            }
            self._bookings = {
                venue_id: [Booking.from_dict(booking) for booking in bookings]
                for venue_id, bookings in data.get("bookings", {}).items()
            }
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Malformed booking snapshot {self.path}: {exc}") from exc

    def _save(self, venues: Venues, time_slots: TemplateSlots, bookings: Bookings) -> None:
        data: Dict[str, Any] = {
            "venues": {venue_id: venue.to_dict() for venue_id, venue in venues.items()},
            "time_slots": {
                venue_id: [slot.to_dict() for slot in slots]
                for venue_id, slots in time_slots.items()
            },
            "bookings": {
                venue_id: [booking.to_dict() for booking in venue_bookings]
                for venue_id, venue_bookings in bookings.items()
            },
        }

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise StorageError(f"Could not write booking snapshot {self.path}: {exc}") from exc

    def _commit(
        self,
        venues: Optional[Venues] = None,
        time_slots: Optional[TemplateSlots] = None,
        bookings: Optional[Bookings] = None,
    ) -> None:
        """Write the new state, then make it current. Call with the lock held."""
        venues = self._venues if venues is None else venues
        time_slots = self._time_slots if time_slots is None else time_slots
        bookings = self._bookings if bookings is None else bookings

        self._save(venues, time_slots, bookings)

        self._venues = venues
        self._time_slots = time_slots
        self._bookings = bookings

    def _ensure_open(self) -> None:
        if not self._opened:
            raise StorageError("Store is not open; call open() first")

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def seed_demo_data(self) -> bool:
        """
        Insert the demo venue and its weekly slots once.

        Returns:
            True if data was inserted, False if it already existed
        """
        self._ensure_open()
        with self._lock:
            if DEMO_VENUE_ID in self._venues:
                return False

            logger.info("Seeding demo data...")
            self._commit(
                venues={**self._venues, DEMO_VENUE_ID: demo_venue()},
                time_slots={**self._time_slots, DEMO_VENUE_ID: demo_template_slots()},
                bookings={DEMO_VENUE_ID: [], **self._bookings},
            )

        logger.info("Demo data seeded")
        return True

    # ------------------------------------------------------------------
    # Venues
    # ------------------------------------------------------------------

    def _active_venue(self, venue_id: str) -> Optional[Venue]:
        venue = self._venues.get(venue_id)
        if venue is None or not venue.is_active:
            return None
        return venue

    def get_venue(self, venue_id: str) -> Optional[Venue]:
        self._ensure_open()
        with self._lock:
            return self._active_venue(venue_id)

    def list_venues(self) -> List[Venue]:
        self._ensure_open()
        with self._lock:
            venues = [venue for venue in self._venues.values() if venue.is_active]
        return sorted(venues, key=lambda venue: venue.name)

    def create_venue(self, venue: Venue) -> Venue:
        self._ensure_open()
        now = pendulum.now("UTC")
        created = replace(
            venue,
            id=venue.id or str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            is_active=True,
        )

        with self._lock:
            self._commit(
                venues={**self._venues, created.id: created},
                time_slots={created.id: [], **self._time_slots},
                bookings={created.id: [], **self._bookings},
            )

        return created

    def update_venue(
        self,
        venue_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        timezone: Optional[str] = None,
        settings: Optional[VenueSettings] = None,
    ) -> Optional[Venue]:
        self._ensure_open()
        with self._lock:
            venue = self._active_venue(venue_id)
            if venue is None:
                return None

            changes: Dict[str, Any] = {"updated_at": pendulum.now("UTC")}
            if name:
                changes["name"] = name
            if description is not None:
                changes["description"] = description
            if timezone:
                changes["timezone"] = timezone
            if settings is not None:
                changes["settings"] = settings

            updated = replace(venue, **changes)
            self._commit(venues={**self._venues, venue_id: updated})

        return updated

    def deactivate_venue(self, venue_id: str) -> bool:
        self._ensure_open()
        with self._lock:
            venue = self._active_venue(venue_id)
            if venue is None:
                return False

            updated = replace(venue, is_active=False, updated_at=pendulum.now("UTC"))
            self._commit(venues={**self._venues, venue_id: updated})

        return True

    # ------------------------------------------------------------------
    # Weekly template slots
    # ------------------------------------------------------------------

    def _find_slot(self, slot_id: str) -> Optional[Tuple[str, int, TemplateSlot]]:
        for venue_id, slots in self._time_slots.items():
            for index, slot in enumerate(slots):
                if slot.id == slot_id:
                    return venue_id, index, slot
        return None

    def _check_unique_start(self, slot: TemplateSlot) -> None:
        start = _start_key(slot)
        for other in self._time_slots.get(slot.venue_id, []):
            if (
                other.id != slot.id
                and other.day_of_week == slot.day_of_week
                and _start_key(other) == start
            ):
                raise DuplicateTemplateSlotError(start)

    def list_template_slots(self, venue_id: str, *, available_only: bool = False) -> List[TemplateSlot]:
        self._ensure_open()
        with self._lock:
            slots = [
                slot for slot in self._time_slots.get(venue_id, [])
                if slot.is_available or not available_only
            ]
        return sorted(slots, key=lambda slot: (slot.day_of_week, _start_key(slot)))

    def get_template_slot(self, slot_id: str) -> Optional[TemplateSlot]:
        self._ensure_open()
        with self._lock:
            found = self._find_slot(slot_id)
        return found[2] if found is not None else None

    def create_template_slot(self, slot: TemplateSlot) -> TemplateSlot:
        self._ensure_open()
        created = replace(slot, id=slot.id or str(uuid.uuid4()))

        with self._lock:
            self._check_unique_start(created)
            slots = self._time_slots.get(created.venue_id, [])
            self._commit(time_slots={**self._time_slots, created.venue_id: [*slots, created]})

        return created

    def update_template_slot(
        self,
        slot_id: str,
        *,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        is_available: Optional[bool] = None,
    ) -> Optional[TemplateSlot]:
        self._ensure_open()
        with self._lock:
            found = self._find_slot(slot_id)
            if found is None:
                return None
            venue_id, index, slot = found

            changes: Dict[str, Any] = {}
            if start_time:
                changes["start_time"] = start_time
            if end_time:
                changes["end_time"] = end_time
            if is_available is not None:
                changes["is_available"] = is_available

            updated = replace(slot, **changes)
            if start_time:
                self._check_unique_start(updated)

            slots = list(self._time_slots[venue_id])
            slots[index] = updated
            self._commit(time_slots={**self._time_slots, venue_id: slots})

        return updated

    def delete_template_slot(self, slot_id: str) -> bool:
        self._ensure_open()
        with self._lock:
            found = self._find_slot(slot_id)
            if found is None:
                return False
            venue_id, index, _ = found

            slots = list(self._time_slots[venue_id])
            del slots[index]
            self._commit(time_slots={**self._time_slots, venue_id: slots})

        return True

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def _find_booking(self, booking_id: str) -> Optional[Tuple[str, int, Booking]]:
        for venue_id, bookings in self._bookings.items():
            for index, booking in enumerate(bookings):
                if booking.id == booking_id:
                    return venue_id, index, booking
        return None

    def list_bookings(
        self,
        venue_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        """Bookings of a venue, newest first, with inclusive bounds on start."""
        self._ensure_open()
        lower = ensure_aware(start) if start is not None else None
        upper = ensure_aware(end) if end is not None else None

        with self._lock:
            bookings = [
                booking for booking in self._bookings.get(venue_id, [])
                if (lower is None or booking.start_time >= lower)
                and (upper is None or booking.start_time <= upper)
            ]
        return sorted(bookings, key=lambda booking: booking.start_time, reverse=True)

    def bookings_starting_between(self, venue_id: str, start: datetime, end: datetime) -> List[Booking]:
        """Bookings of a venue starting in ``[start, end)``, oldest first."""
        self._ensure_open()
        lower = ensure_aware(start)
        upper = ensure_aware(end)

        with self._lock:
            bookings = [
                booking for booking in self._bookings.get(venue_id, [])
                if lower <= booking.start_time < upper
            ]
        return sorted(bookings, key=lambda booking: booking.start_time)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        self._ensure_open()
        with self._lock:
            found = self._find_booking(booking_id)
        return found[2] if found is not None else None

    def create_booking(self, booking: Booking) -> Booking:
        self._ensure_open()
        now = pendulum.now("UTC")
        created = replace(
            booking,
            id=booking.id or str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            bookings = self._bookings.get(created.venue_id, [])
            self._commit(bookings={**self._bookings, created.venue_id: [*bookings, created]})

        return created

    def update_booking_status(
        self,
        booking_id: str,
        status: BookingStatus,
        admin_notes: Optional[str] = None,
    ) -> Optional[Booking]:
        self._ensure_open()
        with self._lock:
            found = self._find_booking(booking_id)
            if found is None:
                return None
            venue_id, index, booking = found

            updated = replace(
                booking,
                status=BookingStatus(status),
                admin_notes=admin_notes,
                updated_at=pendulum.now("UTC"),
            )
            bookings = list(self._bookings[venue_id])
            bookings[index] = updated
            self._commit(bookings={**self._bookings, venue_id: bookings})

        return updated
