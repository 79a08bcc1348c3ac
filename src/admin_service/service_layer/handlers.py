"""
Admin service handlers.

The admin service mirrors users, patients, assignments, appointments and
prescription requests from every other service. Its only write of its own
is moving a patient between doctors.
"""

import logging
from typing import Any, Dict

from admin_service.domain import commands
from admin_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.domain import events
from shared.domain.errors import DoctorNotFound, PatientNotFound
from shared.domain.timestamps import utcnow
from shared.service_layer import cascades
from shared.service_layer.assignments import assignment_retry, change_events, unassigned_events

logger = logging.getLogger(__name__)


def upsert_user(event: events.UserEvent, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.users.upsert(id=event.id, role=event.role, name=event.name, email=event.email)
        uow.commit()


def delete_user(event: events.UserDeleted, uow: SqlAlchemyUnitOfWork):
    with uow:
        cascades.delete_user(uow, event, event.deleted_at or utcnow())
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


def upsert_appointment(event: events.AppointmentEvent, uow: SqlAlchemyUnitOfWork):
    """Every non-delete appointment event carries the full row."""
    with uow:
        uow.appointments.upsert(
            id=event.id,
            patient_user_id=event.patient_user_id,
            doctor_user_id=event.doctor_user_id,
            date=event.date,
            slot=event.slot,
            status=event.status,
            start_time=event.start_time,
            end_time=event.end_time,
        )
        uow.commit()


def delete_appointment(event: events.AppointmentDeleted, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.appointments.soft_delete(event.id, event.deleted_at or utcnow())
        uow.commit()


def upsert_prescription(event: events.PrescriptionEvent, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.prescriptions.upsert(
            id=event.id,
            patient_id=event.patient_id,
            medication=event.medication,
            notes=event.notes,
            status=event.status,
        )
        uow.commit()


def delete_prescription(event: events.PrescriptionRequestDeleted, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.prescriptions.soft_delete(event.id, event.deleted_at or utcnow())
        uow.commit()


@assignment_retry
def reassign_doctor(command: commands.ReassignDoctor, uow: SqlAlchemyUnitOfWork) -> Dict[str, Any]:
    """
    Move a patient to another doctor, or to none.

    The previous doctor, if different, is unassigned first. Both steps emit
    their events; reassigning to the current doctor changes nothing.

    Raises:
        PatientNotFound: the patient is unknown or deleted
        DoctorNotFound: doctor_id is not an active doctor
    """
    with uow:
        patient = uow.patients.get(command.patient_id)
        if patient is None or patient.deleted_at is not None:
            raise PatientNotFound(f"Patient {command.patient_id} not found")

        if command.doctor_id:
            doctor = uow.users.get(command.doctor_id)
            if doctor is None or doctor.deleted_at is not None or not doctor.is_doctor:
                raise DoctorNotFound(f"Doctor {command.doctor_id} not found")

        current = uow.assignments.active_for_patient(command.patient_id)
        previous_doctor_id = current.doctor_id if current else None
        now = utcnow()

        if previous_doctor_id and previous_doctor_id != command.doctor_id:
            for event in unassigned_events(uow.assignments.unassign(previous_doctor_id, command.patient_id, now)):
                uow.record(event)

        if command.doctor_id and command.doctor_id != previous_doctor_id:
            for event in change_events(uow.assignments.assign(command.doctor_id, command.patient_id, now)):
                uow.record(event)

        uow.commit()

    logger.info(f"Patient {command.patient_id} moved from doctor {previous_doctor_id} to {command.doctor_id}")
    return {
        "patient_id": command.patient_id,
        "doctor_id": command.doctor_id,
        "previous_doctor_id": previous_doctor_id,
    }
