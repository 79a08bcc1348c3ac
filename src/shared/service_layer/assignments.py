"""
Doctor/patient assignment bookkeeping.

A patient has at most one active doctor. Every (doctor, patient) pair owns a
single row for its whole history: unassigning tombstones it, assigning again
clears the tombstone. Each write below is a single conditional statement so
only the rows that actually change are reported back, which is what the
cascades turn into compensating events.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import Table, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from shared.domain.events import DoctorPatientAssigned, DoctorPatientUnassigned
from shared.domain.model import Assignment
from shared.domain.timestamps import utcnow

logger = logging.getLogger(__name__)

# A concurrent assign for the same patient trips the active-row unique index;
# retrying re-runs the whole unit of work against the committed state.
assignment_retry = retry(
    retry=retry_if_exception_type(IntegrityError),
    stop=stop_after_attempt(3),
    reraise=True,
)


def unassigned_events(released: List[Assignment]) -> List[DoctorPatientUnassigned]:
    """One compensating event per assignment row that was actually tombstoned."""
    return [
        DoctorPatientUnassigned(doctor_id=row.doctor_id, patient_id=row.patient_id, deleted_at=row.deleted_at)
        for row in released
    ]


def change_events(change: "AssignmentChange") -> list:
    events = list(unassigned_events(change.displaced))
    if change.activated is not None:
        events.append(DoctorPatientAssigned(doctor_id=change.activated.doctor_id, patient_id=change.activated.patient_id))
    return events


@dataclass
class AssignmentChange:
    displaced: List[Assignment] = field(default_factory=list)
    activated: Optional[Assignment] = None

    @property
    def changed(self) -> bool:
        return bool(self.displaced) or self.activated is not None


class AssignmentCoordinator:
    def __init__(self, session: Session, table: Table, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.table = table
        self.clock = clock

    def _rows(self, stmt) -> List[Assignment]:
        return [Assignment(**dict(row)) for row in self.session.execute(stmt).mappings().all()]

    def _tombstone(self, deleted_at: Optional[datetime], *criteria) -> List[Assignment]:
        stmt = (
            update(self.table)
            .where(*criteria)
            .where(self.table.c.deleted_at.is_(None))
            .values(deleted_at=deleted_at or self.clock())
            .returning(*self.table.c)
        )
        return self._rows(stmt)

    def assign(self, doctor_id: str, patient_id: str, at: Optional[datetime] = None) -> AssignmentChange:
        """
        Make doctor_id the patient's only active doctor.

        Other active assignments of the patient are tombstoned and returned
        as displaced. Assigning an already active pair changes nothing.
        """
        at = at or self.clock()
        c = self.table.c

        displaced = self._tombstone(at, c.patient_id == patient_id, c.doctor_id != doctor_id)

        reactivated = self._rows(
            update(self.table)
            .where(c.doctor_id == doctor_id, c.patient_id == patient_id)
            .where(c.deleted_at.is_not(None))
            .values(deleted_at=None, assigned_at=at)
            .returning(*self.table.c)
        )
        if reactivated:
            activated = reactivated[0]
        elif self._find(doctor_id, patient_id) is None:
            activated = self._rows(
                insert(self.table)
                .values(doctor_id=doctor_id, patient_id=patient_id, assigned_at=at, deleted_at=None)
                .returning(*self.table.c)
            )[0]
        else:
            activated = None

        if displaced or activated:
            logger.info(
                f"Assigned patient {patient_id} to doctor {doctor_id} "
                f"(displaced {[a.doctor_id for a in displaced]})"
            )
        return AssignmentChange(displaced=displaced, activated=activated)

    def unassign(self, doctor_id: str, patient_id: str, deleted_at: Optional[datetime] = None) -> List[Assignment]:
        c = self.table.c
        return self._tombstone(deleted_at, c.doctor_id == doctor_id, c.patient_id == patient_id)

    def release_doctor(self, doctor_id: str, deleted_at: Optional[datetime] = None) -> List[Assignment]:
        """Tombstone every active assignment of a doctor."""
        released = self._tombstone(deleted_at, self.table.c.doctor_id == doctor_id)
        if released:
            logger.info(f"Released {len(released)} patient(s) from doctor {doctor_id}")
        return released

    def release_patient(self, patient_id: str, deleted_at: Optional[datetime] = None) -> List[Assignment]:
        """Tombstone every active assignment of a patient."""
        released = self._tombstone(deleted_at, self.table.c.patient_id == patient_id)
        if released:
            logger.info(f"Released patient {patient_id} from {len(released)} doctor(s)")
        return released

    def _find(self, doctor_id: str, patient_id: str) -> Optional[Assignment]:
        c = self.table.c
        rows = self._rows(select(self.table).where(c.doctor_id == doctor_id, c.patient_id == patient_id))
        return rows[0] if rows else None

    def active_for_patient(self, patient_id: str) -> Optional[Assignment]:
        c = self.table.c
        rows = self._rows(select(self.table).where(c.patient_id == patient_id, c.deleted_at.is_(None)))
        return rows[0] if rows else None

    def active_for_doctor(self, doctor_id: str) -> List[Assignment]:
        c = self.table.c
        return self._rows(
            select(self.table)
            .where(c.doctor_id == doctor_id, c.deleted_at.is_(None))
            .order_by(c.patient_id)
        )
