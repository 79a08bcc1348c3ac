"""Appointment repository that only touches the columns the store actually has."""

import abc
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import Table, insert, or_, select, update
from sqlalchemy.orm import Session

from shared.domain.model import Appointment

TIME_COLUMNS = ("start_time", "end_time")


class AbstractAppointmentRepository(abc.ABC):
    @abc.abstractmethod
    def add(self, appointment: Appointment):
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, appointment_id: str) -> Optional[Appointment]:
        raise NotImplementedError

    @abc.abstractmethod
    def update(self, appointment_id: str, party: Optional[str] = None, for_doctor: Optional[str] = None, **values) -> Optional[Appointment]:
        raise NotImplementedError

    @abc.abstractmethod
    def soft_delete(self, appointment_id: str, deleted_at: datetime) -> Optional[Appointment]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_active(self, user_id: Optional[str] = None) -> List[Appointment]:
        raise NotImplementedError


class SqlAlchemyAppointmentRepository(AbstractAppointmentRepository):
    def __init__(self, session: Session, table: Table, has_time_columns: Callable[[], bool]):
        self.session = session
        self.table = table
        self.has_time_columns = has_time_columns

    def _columns(self):
        if self.has_time_columns():
            return list(self.table.c)
        return [c for c in self.table.c if c.name not in TIME_COLUMNS]

    def _values(self, values: dict) -> dict:
        if self.has_time_columns():
            return values
        return {k: v for k, v in values.items() if k not in TIME_COLUMNS}

    def _rows(self, stmt) -> List[Appointment]:
        return [Appointment(**dict(row)) for row in self.session.execute(stmt).mappings().all()]

    def add(self, appointment: Appointment):
        values = self._values({
            "id": appointment.id,
            "patient_user_id": appointment.patient_user_id,
            "doctor_user_id": appointment.doctor_user_id,
            "date": appointment.date,
            "slot": appointment.slot,
            "status": appointment.status,
            "start_time": appointment.start_time,
            "end_time": appointment.end_time,
            "deleted_at": None,
        })
        self.session.execute(insert(self.table).values(**values))

    def get(self, appointment_id):
        rows = self._rows(select(*self._columns()).where(self.table.c.id == appointment_id))
        return rows[0] if rows else None

    def update(self, appointment_id, party=None, for_doctor=None, **values):
        """
        Change an active appointment. party, when given, must be its doctor or
        its patient; for_doctor must be its doctor. Returns the updated row,
        or None when nothing matched.
        """
        c = self.table.c
        stmt = update(self.table).where(c.id == appointment_id, c.deleted_at.is_(None))
        if party is not None:
            stmt = stmt.where(or_(c.patient_user_id == party, c.doctor_user_id == party))
        if for_doctor is not None:
            stmt = stmt.where(c.doctor_user_id == for_doctor)
        rows = self._rows(stmt.values(**self._values(values)).returning(*self._columns()))
        return rows[0] if rows else None

    def soft_delete(self, appointment_id, deleted_at):
        return self.update(appointment_id, deleted_at=deleted_at)

    def list_active(self, user_id=None):
        c = self.table.c
        stmt = select(*self._columns()).where(c.deleted_at.is_(None))
        if user_id is not None:
            stmt = stmt.where(or_(c.patient_user_id == user_id, c.doctor_user_id == user_id))
        return self._rows(stmt.order_by(c.date, c.slot))
