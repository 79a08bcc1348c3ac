"""
Doctor service handlers.

Projection handlers keep the user directory, the doctor list, patient
profiles and the assignment map in step with upstream events. The command
handlers are the service's own write path for assignments.
"""

import logging

from doctor_service.domain import commands
from doctor_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.domain import events
from shared.domain.timestamps import utcnow
from shared.service_layer import cascades
from shared.service_layer.assignments import assignment_retry, change_events, unassigned_events

logger = logging.getLogger(__name__)


def upsert_user(event: events.UserEvent, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.users.upsert(id=event.id, role=event.role, name=event.name, email=event.email)
        if event.role == "doctor":
            uow.doctors.upsert(id=event.id)
        uow.commit()


def delete_user(event: events.UserDeleted, uow: SqlAlchemyUnitOfWork):
    """
    Tombstone a user. Deleting a doctor also releases all of their patients,
    with one DOCTOR_PATIENT_UNASSIGNED per assignment that was still active.
    """
    deleted_at = event.deleted_at or utcnow()
    with uow:
        if cascades.delete_user(uow, event, deleted_at) == "doctor":
            uow.doctors.soft_delete(event.id, deleted_at)
        uow.commit()


def upsert_patient(event: events.PatientCreated, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.patients.upsert(
            id=event.id,
            user_id=event.user_id,
            name=event.name,
            dob=event.dob,
            conditions=event.conditions or [],
        )
        uow.commit()


def delete_patient(event: events.PatientDeleted, uow: SqlAlchemyUnitOfWork):
    """Tombstone a patient profile, by id or by owning user, and release its doctor."""
    with uow:
        cascades.delete_patient(uow, event, event.deleted_at or utcnow())
        uow.commit()


def apply_assigned(event: events.DoctorPatientAssigned, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.assignments.assign(event.doctor_id, event.patient_id)
        uow.commit()


def apply_unassigned(event: events.DoctorPatientUnassigned, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.assignments.unassign(event.doctor_id, event.patient_id, event.deleted_at)
        uow.commit()


@assignment_retry
def assign_patient(command: commands.AssignPatient, uow: SqlAlchemyUnitOfWork):
    with uow:
        change = uow.assignments.assign(command.doctor_id, command.patient_id)
        for event in change_events(change):
            uow.record(event)
        uow.commit()
    logger.info(f"Doctor {command.doctor_id} now assigned to patient {command.patient_id}")
    return change


def unassign_patient(command: commands.UnassignPatient, uow: SqlAlchemyUnitOfWork):
    with uow:
        released = uow.assignments.unassign(command.doctor_id, command.patient_id)
        for event in unassigned_events(released):
            uow.record(event)
        uow.commit()
    return len(released)
