"""Integration tests for the admin service read models and doctor reassignment."""
import pytest

from admin_service.domain import commands
from admin_service.service_layer import messagebus
from shared.domain import events
from shared.domain.errors import DoctorNotFound, PatientNotFound


def apply(uow_factory, publisher, *messages):
    return [messagebus.handle(message, uow_factory(), publisher) for message in messages]


@pytest.fixture
def clinic(admin_uow, publisher):
    """Two doctors and one patient assigned to the first."""
    apply(
        admin_uow, publisher,
        events.UserCreated(id="d1", role="doctor"),
        events.UserCreated(id="d2", role="doctor"),
        events.UserCreated(id="u1", role="patient"),
        events.PatientCreated(id="p1", user_id="u1", name="Pat"),
        events.DoctorPatientAssigned(doctor_id="d1", patient_id="p1"),
    )
    return admin_uow


class TestMirrors:
    def test_appointment_lifecycle(self, admin_uow, publisher):
        apply(
            admin_uow, publisher,
            events.AppointmentCreated(id="a1", doctor_user_id="d1", patient_user_id="u1", date="2025-01-01", slot="10:00", status="pending"),
            events.AppointmentApproved(id="a1", doctor_user_id="d1", patient_user_id="u1", date="2025-01-01", slot="10:00", status="approved"),
        )
        with admin_uow() as uow:
            assert uow.appointments.get("a1").status == "approved"

        apply(admin_uow, publisher, events.AppointmentDeleted(id="a1"))
        with admin_uow() as uow:
            assert uow.appointments.list_active() == []

    def test_prescription_lifecycle(self, admin_uow, publisher):
        apply(
            admin_uow, publisher,
            events.PrescriptionRequestCreated(id="r1", patient_id="p1", medication="ibuprofen", status="pending"),
            events.PrescriptionRequestStatusChanged(id="r1", patient_id="p1", medication="ibuprofen", status="approved"),
        )
        with admin_uow() as uow:
            assert uow.prescriptions.get("r1").status == "approved"

        apply(admin_uow, publisher, events.PrescriptionRequestDeleted(id="r1", patient_id="p1"))
        with admin_uow() as uow:
            assert uow.prescriptions.get("r1").deleted_at is not None

    def test_doctor_deletion_cascades(self, clinic, publisher):
        apply(clinic, publisher, events.UserDeleted(id="d1"))
        with clinic() as uow:
            assert uow.assignments.active_for_patient("p1") is None
        assert [e.patient_id for e in publisher.of_type("DOCTOR_PATIENT_UNASSIGNED")] == ["p1"]


class TestReassignDoctor:
    def test_moves_patient_to_new_doctor(self, clinic, publisher):
        [result] = apply(clinic, publisher, commands.ReassignDoctor(patient_id="p1", doctor_id="d2"))

        assert result == {"patient_id": "p1", "doctor_id": "d2", "previous_doctor_id": "d1"}
        assert publisher.types == ["DOCTOR_PATIENT_UNASSIGNED", "DOCTOR_PATIENT_ASSIGNED"]
        with clinic() as uow:
            assert uow.assignments.active_for_patient("p1").doctor_id == "d2"

    def test_same_doctor_changes_nothing(self, clinic, publisher):
        apply(clinic, publisher, commands.ReassignDoctor(patient_id="p1", doctor_id="d1"))
        assert publisher.published == []

    def test_no_doctor_just_unassigns(self, clinic, publisher):
        apply(clinic, publisher, commands.ReassignDoctor(patient_id="p1"))
        assert publisher.types == ["DOCTOR_PATIENT_UNASSIGNED"]

    def test_unknown_patient(self, clinic, publisher):
        with pytest.raises(PatientNotFound):
            apply(clinic, publisher, commands.ReassignDoctor(patient_id="nobody", doctor_id="d2"))

    def test_target_must_be_a_doctor(self, clinic, publisher):
        with pytest.raises(DoctorNotFound):
            apply(clinic, publisher, commands.ReassignDoctor(patient_id="p1", doctor_id="u1"))
        assert publisher.published == []
