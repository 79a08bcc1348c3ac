import logging
import uuid
from datetime import timedelta

from sqlalchemy.exc import DBAPIError
from tenacity import retry, retry_if_exception, stop_after_attempt

import config
from appointment_service.domain import commands
from appointment_service.domain.model import AppointmentStatus, BookingWindow, appointment_event
from appointment_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.domain import events
from shared.domain.errors import AppointmentConflict, AppointmentNotFound, InvalidBookingRequest
from shared.domain.model import Appointment
from shared.domain.timestamps import utcnow

logger = logging.getLogger(__name__)

SERIALIZATION_FAILURE = "40001"


def _is_serialization_failure(exc: BaseException) -> bool:
    return isinstance(exc, DBAPIError) and getattr(exc.orig, "pgcode", None) == SERIALIZATION_FAILURE


# Two bookings racing for the same doctor: the loser's transaction is aborted
# by the database and re-run against the winner's committed row.
serializable_retry = retry(
    retry=retry_if_exception(_is_serialization_failure),
    stop=stop_after_attempt(3),
    reraise=True,
)


def _duration() -> timedelta:
    return timedelta(minutes=config.get_booking_config()["default_duration_minutes"])


# ---------- projections ----------

def upsert_user(event: events.UserEvent, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.users.upsert(id=event.id, role=event.role, name=event.name, email=event.email)
        uow.commit()


def delete_user(event: events.UserDeleted, uow: SqlAlchemyUnitOfWork):
    with uow:
        uow.users.soft_delete(event.id, event.deleted_at or utcnow())
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
    deleted_at = event.deleted_at or utcnow()
    with uow:
        if event.id:
            uow.patients.soft_delete(event.id, deleted_at)
        else:
            uow.patients.soft_delete_where(deleted_at, user_id=event.user_id)
        uow.commit()


# ---------- booking ----------

@serializable_retry
def book_appointment(command: commands.BookAppointment, uow: SqlAlchemyUnitOfWork) -> Appointment:
    """
    Book a pending appointment after checking the doctor's calendar.

    Raises:
        InvalidBookingRequest: no usable date/slot or start time
        AppointmentConflict: the window collides with an active appointment
    """
    if not command.patient_user_id or not command.doctor_user_id:
        raise InvalidBookingRequest("patientUserId and doctorUserId are required for an appointment.")
    window = BookingWindow.from_request(
        command.date, command.slot, command.start_time, command.end_time, _duration()
    )

    with uow:
        conflict = uow.booking_guard.check_conflict(uow.session, command.doctor_user_id, window)
        if conflict:
            raise AppointmentConflict(conflict)

        appointment_id = command.appointment_id or str(uuid.uuid4())
        uow.appointments.add(
            Appointment(
                id=appointment_id,
                patient_user_id=command.patient_user_id,
                doctor_user_id=command.doctor_user_id,
                date=window.date,
                slot=window.slot,
                status=AppointmentStatus.PENDING,
                start_time=window.start,
                end_time=window.end,
            )
        )
        created = uow.appointments.get(appointment_id)
        uow.record(appointment_event(events.AppointmentCreated, created))
        uow.commit()

    logger.info(f"Booked appointment {appointment_id} with doctor {command.doctor_user_id} at {window.start}")
    return created


@serializable_retry
def reschedule_appointment(command: commands.RescheduleAppointment, uow: SqlAlchemyUnitOfWork) -> Appointment:
    with uow:
        existing = uow.appointments.get(command.appointment_id)
        if existing is None or existing.deleted_at is not None:
            raise AppointmentNotFound(f"Appointment {command.appointment_id} not found")

        doctor_user_id = command.doctor_user_id or existing.doctor_user_id
        patient_user_id = command.patient_user_id or existing.patient_user_id
        if not doctor_user_id or not patient_user_id:
            raise InvalidBookingRequest("Missing doctor or patient information")

        window = BookingWindow.rescheduled(
            existing, command.date, command.slot, command.start_time, command.end_time, _duration()
        )
        status = command.status or existing.status or AppointmentStatus.PENDING
        if status not in AppointmentStatus.ALL:
            raise InvalidBookingRequest(f"Unknown appointment status {status!r}")

        conflict = uow.booking_guard.check_conflict(
            uow.session, doctor_user_id, window, exclude_id=command.appointment_id
        )
        if conflict:
            raise AppointmentConflict(conflict)

        updated = uow.appointments.update(
            command.appointment_id,
            patient_user_id=patient_user_id,
            doctor_user_id=doctor_user_id,
            date=window.date,
            slot=window.slot,
            status=status,
            start_time=window.start,
            end_time=window.end,
        )
        if updated is None:
            raise AppointmentNotFound(f"Appointment {command.appointment_id} not found")
        uow.record(appointment_event(events.AppointmentUpdated, updated))
        uow.commit()
    return updated


def _change_status(uow, event_class, appointment_id, status, **criteria) -> Appointment:
    with uow:
        changed = uow.appointments.update(appointment_id, status=status, **criteria)
        if changed is None:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found or not authorized")
        uow.record(appointment_event(event_class, changed))
        uow.commit()
    logger.info(f"Appointment {appointment_id} is now {status}")
    return changed


def approve_appointment(command: commands.ApproveAppointment, uow: SqlAlchemyUnitOfWork):
    return _change_status(
        uow, events.AppointmentApproved, command.appointment_id, AppointmentStatus.APPROVED,
        for_doctor=command.doctor_user_id,
    )


def deny_appointment(command: commands.DenyAppointment, uow: SqlAlchemyUnitOfWork):
    return _change_status(
        uow, events.AppointmentDenied, command.appointment_id, AppointmentStatus.DENIED,
        for_doctor=command.doctor_user_id,
    )


def cancel_appointment(command: commands.CancelAppointment, uow: SqlAlchemyUnitOfWork):
    return _change_status(
        uow, events.AppointmentCancelled, command.appointment_id, AppointmentStatus.CANCELLED,
        party=command.requested_by,
    )


def delete_appointment(command: commands.DeleteAppointment, uow: SqlAlchemyUnitOfWork):
    deleted_at = utcnow()
    with uow:
        deleted = uow.appointments.soft_delete(command.appointment_id, deleted_at)
        if deleted is None:
            raise AppointmentNotFound(f"Appointment {command.appointment_id} not found")
        uow.record(appointment_event(events.AppointmentDeleted, deleted, deleted_at=deleted_at))
        uow.commit()
    return deleted
