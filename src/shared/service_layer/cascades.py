"""
Delete cascades for services that keep an assignment map.

Both helpers expect a unit of work exposing `users`, `patients` and
`assignments`, run inside its transaction, and record one
DOCTOR_PATIENT_UNASSIGNED per assignment they actually tombstoned.
"""

import logging
from datetime import datetime
from typing import List, Optional

from shared.domain import events
from shared.service_layer.assignments import unassigned_events

logger = logging.getLogger(__name__)


def delete_user(uow, event: events.UserDeleted, deleted_at: datetime) -> Optional[str]:
    """Tombstone a directory user; a doctor also loses all patients. Returns the role used."""
    role = event.role
    if role is None:
        known = uow.users.get(event.id)
        role = known.role if known else None

    if not uow.users.soft_delete(event.id, deleted_at):
        logger.debug(f"User {event.id} unknown or already deleted")

    if role == "doctor":
        for compensating in unassigned_events(uow.assignments.release_doctor(event.id, deleted_at)):
            uow.record(compensating)
    return role


def delete_patient(uow, event: events.PatientDeleted, deleted_at: datetime) -> List[str]:
    """Tombstone patient profiles by id, or by owning user, and release their doctors."""
    if event.id:
        uow.patients.soft_delete(event.id, deleted_at)
        patient_ids = [event.id]
    else:
        patient_ids = [p.id for p in uow.patients.soft_delete_where(deleted_at, user_id=event.user_id)]

    for patient_id in patient_ids:
        for compensating in unassigned_events(uow.assignments.release_patient(patient_id, deleted_at)):
            uow.record(compensating)
    return patient_ids
