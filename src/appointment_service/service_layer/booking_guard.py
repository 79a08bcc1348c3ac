"""
Double-booking guard for doctors' calendars.

Stores created before appointments carried start/end columns only know the
(date, slot) pair. The guard probes the schema once, remembers what it found,
and checks either true range overlap or exact slot equality accordingly.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy import Table, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from appointment_service.adapters import orm
from appointment_service.domain.model import BookingWindow

logger = logging.getLogger(__name__)

TIME_COLUMNS = ("start_time", "end_time")


@dataclass(frozen=True)
class SchemaCapabilities:
    has_time_columns: bool
    probed_at: float


@dataclass(frozen=True)
class BookingConflict:
    kind: str  # "overlap" or "slot_taken"
    appointment_id: str
    message: str


class BookingConflictGuard:
    def __init__(
        self,
        table: Table = orm.appointments,
        max_age_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.table = table
        self.max_age_seconds = max_age_seconds
        self.clock = clock
        self.capabilities = None  # type: Optional[SchemaCapabilities]

    def refresh(self):
        """Forget the cached probe; the next check probes again."""
        self.capabilities = None

    def _stale(self) -> bool:
        if self.capabilities is None:
            return True
        if self.max_age_seconds is None:
            return False
        return self.clock() - self.capabilities.probed_at > self.max_age_seconds

    def probe(self, session: Session) -> SchemaCapabilities:
        try:
            columns = {c["name"].lower() for c in inspect(session.connection()).get_columns(self.table.name)}
            has_time_columns = all(name in columns for name in TIME_COLUMNS)
        except SQLAlchemyError as e:
            logger.warning(f"Could not inspect {self.table.name}, assuming no time columns: {e}")
            has_time_columns = False
        self.capabilities = SchemaCapabilities(has_time_columns=has_time_columns, probed_at=self.clock())
        logger.info(f"Schema probe for {self.table.name}: time columns {'present' if has_time_columns else 'absent'}")
        return self.capabilities

    def capabilities_for(self, session: Session) -> SchemaCapabilities:
        if self._stale():
            return self.probe(session)
        return self.capabilities

    def check_conflict(
        self,
        session: Session,
        doctor_id: str,
        window: BookingWindow,
        exclude_id: Optional[str] = None,
    ) -> Optional[BookingConflict]:
        """
        First active appointment of doctor_id that collides with window, or None.

        With time columns, ranges collide when they overlap as half-open
        intervals, so back-to-back bookings are fine. Without them, only the
        exact same (date, slot) collides.
        """
        c = self.table.c
        stmt = select(c.id).where(c.doctor_user_id == doctor_id, c.deleted_at.is_(None))
        if exclude_id is not None:
            stmt = stmt.where(c.id != exclude_id)

        if self.capabilities_for(session).has_time_columns:
            stmt = stmt.where(c.start_time < window.end, c.end_time > window.start)
            kind = "overlap"
            message = "This time range overlaps with an existing appointment for the selected doctor."
        else:
            stmt = stmt.where(c.date == window.date, c.slot == window.slot)
            kind = "slot_taken"
            message = "This time slot is already booked for the selected doctor."

        conflicting_id = session.execute(stmt.limit(1)).scalar()
        if conflicting_id is None:
            return None
        logger.info(f"Booking for doctor {doctor_id} at {window.start} collides with {conflicting_id}")
        return BookingConflict(kind=kind, appointment_id=conflicting_id, message=message)
