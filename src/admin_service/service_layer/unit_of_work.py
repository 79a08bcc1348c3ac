# pylint: disable=attribute-defined-outside-init
from sqlalchemy.orm.session import Session

from admin_service.adapters import orm
from shared.adapters.repository import SqlAlchemyProjectionRepository
from shared.domain.model import Appointment, PatientProfile, PrescriptionRequest, UserDirectoryEntry
from shared.service_layer import unit_of_work
from shared.service_layer.assignments import AssignmentCoordinator


class SqlAlchemyUnitOfWork(unit_of_work.SqlAlchemyUnitOfWork):
    users: SqlAlchemyProjectionRepository
    patients: SqlAlchemyProjectionRepository
    appointments: SqlAlchemyProjectionRepository
    prescriptions: SqlAlchemyProjectionRepository
    assignments: AssignmentCoordinator

    def _attach(self, session: Session):
        self.users = SqlAlchemyProjectionRepository(session, orm.users, UserDirectoryEntry)
        self.patients = SqlAlchemyProjectionRepository(session, orm.patients, PatientProfile)
        self.appointments = SqlAlchemyProjectionRepository(session, orm.appointments, Appointment)
        self.prescriptions = SqlAlchemyProjectionRepository(session, orm.prescription_requests, PrescriptionRequest)
        self.assignments = AssignmentCoordinator(session, orm.doctor_patient_map)
