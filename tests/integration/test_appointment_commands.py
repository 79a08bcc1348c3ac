"""Integration tests for appointment booking against an in-memory store."""
from datetime import datetime, timezone

import pytest

from appointment_service.domain import commands
from appointment_service.service_layer import messagebus
from appointment_service.service_layer.booking_guard import BookingConflictGuard
from appointment_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.domain import events
from shared.domain.errors import AppointmentConflict, AppointmentNotFound, InvalidBookingRequest


def utc(hour, minute=0):
    return datetime(2025, 1, 1, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def book(appointment_uow, publisher):
    def book(slot, doctor="d1", patient="u1", appointment_id=None, **kwargs):
        cmd = commands.BookAppointment(
            patient_user_id=patient,
            doctor_user_id=doctor,
            date="2025-01-01",
            slot=slot,
            appointment_id=appointment_id,
            **kwargs,
        )
        return messagebus.handle(cmd, appointment_uow(), publisher)
    return book


def handle(appointment_uow, publisher, cmd):
    return messagebus.handle(cmd, appointment_uow(), publisher)


class TestBooking:
    def test_booking_is_pending_and_announced(self, book, publisher):
        appointment = book("10:00", appointment_id="a1")

        assert appointment.status == "pending"
        assert (appointment.start_time, appointment.end_time) == (utc(10), utc(10, 30))
        [created] = publisher.published
        assert isinstance(created, events.AppointmentCreated)
        assert created.id == "a1"
        assert created.start_time == utc(10)

    def test_overlapping_booking_is_rejected(self, book, publisher):
        book("10:00", appointment_id="a1")
        with pytest.raises(AppointmentConflict) as excinfo:
            book("10:15", patient="u2")

        assert excinfo.value.conflict.appointment_id == "a1"
        assert publisher.types == ["APPOINTMENT_CREATED"]

    def test_back_to_back_booking_is_accepted(self, book):
        book("10:00")
        assert book("10:30").slot == "10:30"

    def test_missing_parties_are_invalid(self, book):
        with pytest.raises(InvalidBookingRequest):
            book("10:00", doctor="")

    def test_cancelled_appointment_still_blocks_time(self, book, appointment_uow, publisher):
        """Only deleted appointments free their time."""
        book("10:00", appointment_id="a1")
        handle(appointment_uow, publisher, commands.CancelAppointment(appointment_id="a1"))
        with pytest.raises(AppointmentConflict):
            book("10:00")

    def test_deleted_appointment_frees_time(self, book, appointment_uow, publisher):
        book("10:00", appointment_id="a1")
        handle(appointment_uow, publisher, commands.DeleteAppointment(appointment_id="a1"))
        assert book("10:00").id != "a1"
        deleted = publisher.of_type("APPOINTMENT_DELETED")[0]
        assert deleted.deleted_at is not None


class TestReschedule:
    def test_moves_appointment_and_derives_end(self, book, appointment_uow, publisher):
        book("10:00", appointment_id="a1")
        updated = handle(
            appointment_uow, publisher,
            commands.RescheduleAppointment(appointment_id="a1", start_time="2025-01-01T14:00:00Z"),
        )
        assert (updated.slot, updated.end_time) == ("14:00", utc(14, 30))
        assert publisher.types[-1] == "APPOINTMENT_UPDATED"

    def test_overlap_with_itself_is_allowed(self, book, appointment_uow, publisher):
        book("10:00", appointment_id="a1")
        updated = handle(appointment_uow, publisher, commands.RescheduleAppointment(appointment_id="a1", slot="10:15"))
        assert updated.start_time == utc(10, 15)

    def test_into_another_booking_conflicts(self, book, appointment_uow, publisher):
        book("10:00", appointment_id="a1")
        book("11:00", appointment_id="a2")
        with pytest.raises(AppointmentConflict):
            handle(appointment_uow, publisher, commands.RescheduleAppointment(appointment_id="a2", slot="10:15"))

    def test_unknown_appointment(self, appointment_uow, publisher):
        with pytest.raises(AppointmentNotFound):
            handle(appointment_uow, publisher, commands.RescheduleAppointment(appointment_id="nope", slot="10:00"))

    def test_unknown_status_is_invalid(self, book, appointment_uow, publisher):
        book("10:00", appointment_id="a1")
        with pytest.raises(InvalidBookingRequest):
            handle(appointment_uow, publisher, commands.RescheduleAppointment(appointment_id="a1", status="maybe"))


class TestStatusChanges:
    def test_doctor_approves_own_appointment(self, book, appointment_uow, publisher):
        book("10:00", appointment_id="a1")
        approved = handle(appointment_uow, publisher, commands.ApproveAppointment(appointment_id="a1", doctor_user_id="d1"))
        assert approved.status == "approved"
        assert publisher.types[-1] == "APPOINTMENT_APPROVED"

    def test_other_doctor_cannot_deny(self, book, appointment_uow, publisher):
        book("10:00", appointment_id="a1")
        with pytest.raises(AppointmentNotFound):
            handle(appointment_uow, publisher, commands.DenyAppointment(appointment_id="a1", doctor_user_id="d2"))

    def test_patient_may_cancel(self, book, appointment_uow, publisher):
        book("10:00", appointment_id="a1", patient="u1")
        cancelled = handle(appointment_uow, publisher, commands.CancelAppointment(appointment_id="a1", requested_by="u1"))
        assert cancelled.status == "cancelled"

    def test_stranger_cannot_cancel(self, book, appointment_uow, publisher):
        book("10:00", appointment_id="a1")
        with pytest.raises(AppointmentNotFound):
            handle(appointment_uow, publisher, commands.CancelAppointment(appointment_id="a1", requested_by="u9"))


class TestLegacyStore:
    def test_booking_without_time_columns(self, legacy_appointment_session_factory, publisher):
        """Old stores keep only (date, slot); events still carry derived start and end."""
        guard = BookingConflictGuard()

        def uow():
            return SqlAlchemyUnitOfWork(legacy_appointment_session_factory, booking_guard=guard)

        cmd = commands.BookAppointment(patient_user_id="u1", doctor_user_id="d1", date="2025-01-01", slot="10:00")
        created = messagebus.handle(cmd, uow(), publisher)

        assert created.start_time is None
        assert publisher.published[0].end_time == utc(10, 30)
        with pytest.raises(AppointmentConflict) as excinfo:
            messagebus.handle(cmd, uow(), publisher)
        assert excinfo.value.conflict.kind == "slot_taken"


class TestProjections:
    def test_user_and_patient_projections(self, appointment_uow, publisher):
        handle(appointment_uow, publisher, events.UserCreated(id="u1", role="patient"))
        handle(appointment_uow, publisher, events.PatientCreated(id="p1", user_id="u1"))
        handle(appointment_uow, publisher, events.PatientDeleted(user_id="u1"))

        with appointment_uow() as uow:
            assert uow.users.get("u1").role == "patient"
            assert uow.patients.get("p1").deleted_at is not None
        assert publisher.published == []
