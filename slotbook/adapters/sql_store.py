"""
SQL-backed store for venues, weekly template slots and bookings.

Uses SQLAlchemy so the same code runs on the default SQLite file and on a
server database. The store only fetches and shapes rows; availability is
resolved by the domain layer.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import pendulum
from pendulum import DateTime
from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..domain.exceptions import DuplicateTemplateSlotError, StorageError, ValidationError
from ..domain.models import (
    Booking,
    BookingStatus,
    TemplateSlot,
    Venue,
    VenueSettings,
    ensure_aware,
)
from .demo_data import DEMO_VENUE_ID, demo_template_slots, demo_venue
from .sql_models import Base, BookingRecord, TemplateSlotRecord, VenueRecord

logger = logging.getLogger(__name__)


def _to_db(value: datetime) -> datetime:
    """Naive UTC value for storage."""
    return ensure_aware(value).in_timezone("UTC").naive()


def _from_db(value: datetime) -> DateTime:
    return pendulum.instance(value, tz="UTC")


class SqlBookingStore:
    """
    Booking store backed by a SQL database.

    Lifecycle: construct, ``open()`` (creates the database, ensures the
    schema, optionally seeds the demo venue), use, ``close()``. Works as a
    context manager as well.
    """

    def __init__(self, database_url: str, *, seed_demo: bool = False, echo: bool = False):
        self.database_url = database_url
        self.seed_demo = seed_demo
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def open(self) -> "SqlBookingStore":
        """Connect, create missing tables and seed demo data if enabled."""
        if self._engine is not None:
            return self

        try:
            self._engine = self._create_engine()
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not open database {self.database_url}: {exc}") from exc

        self._session_factory = sessionmaker(
            bind=self._engine, autoflush=False, expire_on_commit=False
        )
        logger.info("Database ready at %s", self.database_url)

        if self.seed_demo:
            self.seed_demo_data()

        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def __enter__(self) -> "SqlBookingStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _create_engine(self) -> Engine:
        url = make_url(self.database_url)
        kwargs: Dict[str, Any] = {"echo": self.echo}

        if url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # In-memory databases live on a single shared connection
                kwargs["poolclass"] = StaticPool
            else:
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(url, **kwargs)

        if url.get_backend_name() == "sqlite":
            @event.listens_for(engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        return engine

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Session with commit on success and rollback on failure."""
        if self._session_factory is None:
            raise StorageError("Store is not open; call open() first")

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            logger.debug("Integrity error: %s", exc.orig)
            raise ValidationError("The change conflicts with existing data") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError(f"Database error: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def seed_demo_data(self) -> bool:
        """
        Insert the demo venue and its weekly slots once.

        Returns:
            True if data was inserted, False if it already existed
        """
        with self._session() as session:
            if session.get(VenueRecord, DEMO_VENUE_ID) is not None:
                return False

            logger.info("Seeding demo data...")
            venue = demo_venue()
            session.add(self._venue_record(venue))
            session.flush()
            created_at = _to_db(pendulum.now("UTC"))
            for slot in demo_template_slots():
                session.add(self._slot_record(slot, created_at))

        logger.info("Demo data seeded")
        return True

    # ------------------------------------------------------------------
    # Venues
    # ------------------------------------------------------------------

    def get_venue(self, venue_id: str) -> Optional[Venue]:
        with self._session() as session:
            record = session.get(VenueRecord, venue_id)
            if record is None or not record.is_active:
                return None
            return self._venue_from_record(record)

    def list_venues(self) -> List[Venue]:
        with self._session() as session:
            records = session.scalars(
                select(VenueRecord)
                .where(VenueRecord.is_active.is_(True))
                .order_by(VenueRecord.name)
            ).all()
            return [self._venue_from_record(record) for record in records]

    def create_venue(self, venue: Venue) -> Venue:
        now = pendulum.now("UTC")
        venue.id = venue.id or str(uuid.uuid4())
        venue.created_at = now
        venue.updated_at = now
        venue.is_active = True

        with self._session() as session:
            session.add(self._venue_record(venue))

        return venue

    def update_venue(
        self,
        venue_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        timezone: Optional[str] = None,
        settings: Optional[VenueSettings] = None,
    ) -> Optional[Venue]:
        with self._session() as session:
            record = session.get(VenueRecord, venue_id)
            if record is None or not record.is_active:
                return None

            if name:
                record.name = name
            if description is not None:
                record.description = description
            if timezone:
                record.timezone = timezone
            if settings is not None:
                record.settings = settings.to_dict()
            record.updated_at = _to_db(pendulum.now("UTC"))

            return self._venue_from_record(record)

    def deactivate_venue(self, venue_id: str) -> bool:
        with self._session() as session:
            record = session.get(VenueRecord, venue_id)
            if record is None or not record.is_active:
                return False
            record.is_active = False
            record.updated_at = _to_db(pendulum.now("UTC"))
            return True

    # ------------------------------------------------------------------
    # Weekly template slots
    # ------------------------------------------------------------------

    def list_template_slots(self, venue_id: str, *, available_only: bool = False) -> List[TemplateSlot]:
        query = select(TemplateSlotRecord).where(TemplateSlotRecord.venue_id == venue_id)
        if available_only:
            query = query.where(TemplateSlotRecord.is_available.is_(True))
        query = query.order_by(TemplateSlotRecord.day_of_week, TemplateSlotRecord.start_time)

        with self._session() as session:
            return [self._slot_from_record(record) for record in session.scalars(query).all()]

    def get_template_slot(self, slot_id: str) -> Optional[TemplateSlot]:
        with self._session() as session:
            record = session.get(TemplateSlotRecord, slot_id)
            return self._slot_from_record(record) if record is not None else None

    def create_template_slot(self, slot: TemplateSlot) -> TemplateSlot:
        slot.id = slot.id or str(uuid.uuid4())
        with self._session() as session:
            self._check_unique_start(
                session, slot.venue_id, slot.day_of_week, slot.to_dict()["start_time"], slot.id
            )
            session.add(self._slot_record(slot, _to_db(pendulum.now("UTC"))))
        return slot

    def update_template_slot(
        self,
        slot_id: str,
        *,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        is_available: Optional[bool] = None,
    ) -> Optional[TemplateSlot]:
        with self._session() as session:
            record = session.get(TemplateSlotRecord, slot_id)
            if record is None:
                return None

            if start_time:
                self._check_unique_start(
                    session, record.venue_id, record.day_of_week, start_time, record.id
                )
                record.start_time = start_time
            if end_time:
                record.end_time = end_time
            if is_available is not None:
                record.is_available = is_available

            return self._slot_from_record(record)

    @staticmethod
    def _check_unique_start(
        session: Session,
        venue_id: str,
        day_of_week: int,
        start_time: str,
        slot_id: str,
    ) -> None:
        existing = session.scalar(
            select(TemplateSlotRecord.id).where(
                TemplateSlotRecord.venue_id == venue_id,
                TemplateSlotRecord.day_of_week == day_of_week,
                TemplateSlotRecord.start_time == start_time,
                TemplateSlotRecord.id != slot_id,
            )
        )
        if existing is not None:
            raise DuplicateTemplateSlotError(start_time)

    def delete_template_slot(self, slot_id: str) -> bool:
        with self._session() as session:
            record = session.get(TemplateSlotRecord, slot_id)
            if record is None:
                return False
            session.delete(record)
            return True

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def list_bookings(
        self,
        venue_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        """Bookings of a venue, newest first, with inclusive bounds on start."""
        query = select(BookingRecord).where(BookingRecord.venue_id == venue_id)
        if start is not None:
            query = query.where(BookingRecord.start_time >= _to_db(start))
        if end is not None:
            query = query.where(BookingRecord.start_time <= _to_db(end))
        query = query.order_by(BookingRecord.start_time.desc())

        with self._session() as session:
            return [self._booking_from_record(record) for record in session.scalars(query).all()]

    def bookings_starting_between(self, venue_id: str, start: datetime, end: datetime) -> List[Booking]:
        """Bookings of a venue starting in ``[start, end)``, oldest first."""
        query = (
            select(BookingRecord)
            .where(
                BookingRecord.venue_id == venue_id,
                BookingRecord.start_time >= _to_db(start),
                BookingRecord.start_time < _to_db(end),
            )
            .order_by(BookingRecord.start_time)
        )

        with self._session() as session:
            return [self._booking_from_record(record) for record in session.scalars(query).all()]

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._session() as session:
            record = session.get(BookingRecord, booking_id)
            return self._booking_from_record(record) if record is not None else None

    def create_booking(self, booking: Booking) -> Booking:
        now = pendulum.now("UTC")
        booking.id = booking.id or str(uuid.uuid4())
        booking.created_at = now
        booking.updated_at = now

        with self._session() as session:
            session.add(
                BookingRecord(
                    id=booking.id,
                    venue_id=booking.venue_id,
                    customer_name=booking.customer_name,
                    customer_email=booking.customer_email,
                    customer_phone=booking.customer_phone,
                    start_time=_to_db(booking.start_time),
                    end_time=_to_db(booking.end_time),
                    status=BookingStatus(booking.status).value,
                    notes=booking.notes,
                    admin_notes=booking.admin_notes,
                    created_at=_to_db(now),
                    updated_at=_to_db(now),
                )
            )

        return booking

    def update_booking_status(
        self,
        booking_id: str,
        status: BookingStatus,
        admin_notes: Optional[str] = None,
    ) -> Optional[Booking]:
        with self._session() as session:
            record = session.get(BookingRecord, booking_id)
            if record is None:
                return None

            record.status = BookingStatus(status).value
            record.admin_notes = admin_notes
            record.updated_at = _to_db(pendulum.now("UTC"))

            return self._booking_from_record(record)

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _venue_record(venue: Venue) -> VenueRecord:
        created_at = venue.created_at or pendulum.now("UTC")
        return VenueRecord(
            id=venue.id,
            name=venue.name,
            description=venue.description or None,
            timezone=venue.timezone,
            settings=venue.settings.to_dict(),
            is_active=venue.is_active,
            created_at=_to_db(created_at),
            updated_at=_to_db(venue.updated_at or created_at),
        )

    @staticmethod
    def _venue_from_record(record: VenueRecord) -> Venue:
        return Venue(
            id=record.id,
            name=record.name,
            timezone=record.timezone,
            description=record.description or "",
            settings=VenueSettings.from_dict(record.settings or {}),
            is_active=record.is_active,
            created_at=_from_db(record.created_at),
            updated_at=_from_db(record.updated_at),
        )

    @staticmethod
    def _slot_record(slot: TemplateSlot, created_at: datetime) -> TemplateSlotRecord:
        slot_data = slot.to_dict()
        return TemplateSlotRecord(
            id=slot.id,
            venue_id=slot.venue_id,
            day_of_week=slot.day_of_week,
            start_time=slot_data["start_time"],
            end_time=slot_data["end_time"],
            is_available=slot.is_available,
            max_capacity=1,
            created_at=created_at,
        )

    @staticmethod
    def _slot_from_record(record: TemplateSlotRecord) -> TemplateSlot:
        return TemplateSlot(
            id=record.id,
            venue_id=record.venue_id,
            day_of_week=record.day_of_week,
            start_time=record.start_time,
            end_time=record.end_time,
            is_available=record.is_available,
        )

    @staticmethod
    def _booking_from_record(record: BookingRecord) -> Booking:
        return Booking(
            id=record.id,
            venue_id=record.venue_id,
            customer_name=record.customer_name,
            customer_email=record.customer_email,
            customer_phone=record.customer_phone,
            start_time=_from_db(record.start_time),
            end_time=_from_db(record.end_time),
            status=BookingStatus(record.status),
            notes=record.notes,
            admin_notes=record.admin_notes,
            created_at=_from_db(record.created_at),
            updated_at=_from_db(record.updated_at),
        )
