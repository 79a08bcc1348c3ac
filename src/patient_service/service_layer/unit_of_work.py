# pylint: disable=attribute-defined-outside-init
from sqlalchemy.orm.session import Session

from patient_service.adapters import orm
from shared.adapters.repository import SqlAlchemyProjectionRepository
from shared.domain.model import PatientProfile, PrescriptionRequest
from shared.service_layer import unit_of_work


class SqlAlchemyUnitOfWork(unit_of_work.SqlAlchemyUnitOfWork):
    patients: SqlAlchemyProjectionRepository
    prescriptions: SqlAlchemyProjectionRepository

    def _attach(self, session: Session):
        self.patients = SqlAlchemyProjectionRepository(session, orm.patients, PatientProfile)
        self.prescriptions = SqlAlchemyProjectionRepository(session, orm.prescription_requests, PrescriptionRequest)
