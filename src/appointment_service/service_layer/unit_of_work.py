# pylint: disable=attribute-defined-outside-init
from typing import Optional

from sqlalchemy.orm.session import Session

import config
from appointment_service.adapters import orm
from appointment_service.adapters.repository import SqlAlchemyAppointmentRepository
from appointment_service.service_layer.booking_guard import BookingConflictGuard
from shared.adapters.repository import SqlAlchemyProjectionRepository
from shared.domain.model import PatientProfile, UserDirectoryEntry
from shared.service_layer import unit_of_work

# Process-wide so the schema probe runs once, not once per request
DEFAULT_BOOKING_GUARD = BookingConflictGuard(
    max_age_seconds=config.get_booking_config()["capability_max_age_seconds"],
)


class SqlAlchemyUnitOfWork(unit_of_work.SqlAlchemyUnitOfWork):
    """
    Appointment store transaction.

    Runs SERIALIZABLE on PostgreSQL so a conflict check and the insert that
    follows it cannot interleave with another booking for the same doctor.
    """

    isolation_level = "SERIALIZABLE"

    appointments: SqlAlchemyAppointmentRepository
    users: SqlAlchemyProjectionRepository
    patients: SqlAlchemyProjectionRepository

    def __init__(self, session_factory=None, booking_guard: Optional[BookingConflictGuard] = None):
        super().__init__(session_factory)
        self.booking_guard = booking_guard or DEFAULT_BOOKING_GUARD

    def _attach(self, session: Session):
        self.appointments = SqlAlchemyAppointmentRepository(
            session,
            orm.appointments,
            lambda: self.booking_guard.capabilities_for(session).has_time_columns,
        )
        self.users = SqlAlchemyProjectionRepository(session, orm.user_directory, UserDirectoryEntry)
        self.patients = SqlAlchemyProjectionRepository(session, orm.patient_profiles, PatientProfile)
