# pylint: disable=attribute-defined-outside-init
from sqlalchemy.orm.session import Session

from doctor_service.adapters import orm
from shared.adapters.repository import SqlAlchemyProjectionRepository
from shared.domain.model import DoctorRecord, PatientProfile, UserDirectoryEntry
from shared.service_layer import unit_of_work
from shared.service_layer.assignments import AssignmentCoordinator


class SqlAlchemyUnitOfWork(unit_of_work.SqlAlchemyUnitOfWork):
    users: SqlAlchemyProjectionRepository
    doctors: SqlAlchemyProjectionRepository
    patients: SqlAlchemyProjectionRepository
    assignments: AssignmentCoordinator

    def _attach(self, session: Session):
        self.users = SqlAlchemyProjectionRepository(session, orm.user_directory, UserDirectoryEntry)
        self.doctors = SqlAlchemyProjectionRepository(session, orm.doctors, DoctorRecord)
        self.patients = SqlAlchemyProjectionRepository(session, orm.patient_profiles, PatientProfile)
        self.assignments = AssignmentCoordinator(session, orm.doctor_patient_map)
