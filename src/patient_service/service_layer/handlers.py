"""
Patient service handlers.

The patient service owns profiles and prescription requests; every change
here is announced on the patient and prescription topics.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError

from patient_service.domain import commands
from patient_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.domain import events
from shared.domain.errors import PatientNotFound, PrescriptionNotFound, ProfileExists
from shared.domain.model import PatientProfile, PrescriptionRequest
from shared.domain.timestamps import utcnow

logger = logging.getLogger(__name__)

PENDING = "pending"


def create_patient_profile(command: commands.CreatePatientProfile, uow: SqlAlchemyUnitOfWork) -> PatientProfile:
    """
    Create the profile for a user account.

    Raises:
        ProfileExists: the user already has an active profile
    """
    with uow:
        if uow.patients.list_active(user_id=command.user_id):
            raise ProfileExists(f"User {command.user_id} already has a patient profile")

        profile = PatientProfile(
            id=command.patient_id or str(uuid.uuid4()),
            user_id=command.user_id,
            name=command.name,
            dob=command.dob,
            conditions=list(command.conditions or []),
        )
        try:
            uow.patients.upsert(
                id=profile.id,
                user_id=profile.user_id,
                name=profile.name,
                dob=profile.dob,
                conditions=profile.conditions,
            )
            uow.record(
                events.PatientCreated(
                    id=profile.id,
                    user_id=profile.user_id,
                    name=profile.name,
                    dob=profile.dob,
                    conditions=profile.conditions,
                )
            )
            uow.commit()
        except IntegrityError as e:
            # lost a race with a concurrent create for the same user
            raise ProfileExists(f"User {command.user_id} already has a patient profile") from e

    logger.info(f"Created patient profile {profile.id} for user {profile.user_id}")
    return profile


def delete_patient(command: commands.DeletePatient, uow: SqlAlchemyUnitOfWork) -> Optional[PatientProfile]:
    """
    Tombstone a profile and its outstanding prescription requests.

    Emits one PRESCRIPTION_REQUEST_DELETED per request that was still active,
    then PATIENT_DELETED. Returns None when there was nothing to delete.
    """
    if command.patient_id:
        criteria = {"id": command.patient_id}
    elif command.user_id:
        criteria = {"user_id": command.user_id}
    else:
        return None

    deleted_at = utcnow()
    with uow:
        deleted = uow.patients.soft_delete_where(deleted_at, **criteria)
        if not deleted:
            return None
        profile = deleted[0]

        for request in uow.prescriptions.soft_delete_where(deleted_at, patient_id=profile.id):
            uow.record(
                events.PrescriptionRequestDeleted(id=request.id, patient_id=profile.id, deleted_at=deleted_at)
            )
        uow.record(events.PatientDeleted(id=profile.id, user_id=profile.user_id, deleted_at=deleted_at))
        uow.commit()

    logger.info(f"Deleted patient profile {profile.id}")
    return profile


def create_prescription_request(
    command: commands.CreatePrescriptionRequest,
    uow: SqlAlchemyUnitOfWork,
) -> PrescriptionRequest:
    with uow:
        profiles = uow.patients.list_active(user_id=command.user_id)
        if not profiles:
            raise PatientNotFound(f"User {command.user_id} has no patient profile; create one first")

        request = PrescriptionRequest(
            id=str(uuid.uuid4()),
            patient_id=profiles[0].id,
            medication=command.medication,
            notes=command.notes,
            status=PENDING,
        )
        uow.prescriptions.upsert(
            id=request.id,
            patient_id=request.patient_id,
            medication=request.medication,
            notes=request.notes,
            status=request.status,
        )
        uow.record(
            events.PrescriptionRequestCreated(
                id=request.id,
                patient_id=request.patient_id,
                medication=request.medication,
                notes=request.notes,
                status=request.status,
            )
        )
        uow.commit()
    return request


def change_prescription_status(
    command: commands.ChangePrescriptionStatus,
    uow: SqlAlchemyUnitOfWork,
) -> PrescriptionRequest:
    with uow:
        updated = uow.prescriptions.update_active(command.request_id, status=command.status)
        if updated is None:
            raise PrescriptionNotFound(f"Prescription request {command.request_id} not found")
        uow.record(
            events.PrescriptionRequestStatusChanged(
                id=updated.id,
                patient_id=updated.patient_id,
                medication=updated.medication,
                notes=updated.notes,
                status=updated.status,
            )
        )
        uow.commit()
    logger.info(f"Prescription request {updated.id} is now {updated.status}")
    return updated
