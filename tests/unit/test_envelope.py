"""Unit tests for the event wire envelope."""
from datetime import datetime, timezone

import pytest

from shared.adapters import envelope
from shared.domain import events
from shared.domain.errors import MalformedMessage, UnknownEventType
from shared.domain.topics import (
    APPOINTMENT_EVENTS_TOPIC,
    DOCTOR_ASSIGNMENT_TOPIC,
    PATIENT_EVENTS_TOPIC,
    USER_EVENTS_TOPIC,
)


class TestToWire:
    def test_uses_camel_case_keys_and_type_tag(self):
        """Field names go out in camelCase next to the type discriminator."""
        payload = envelope.to_wire(events.DoctorPatientAssigned(doctor_id="d1", patient_id="p1"))
        assert payload == {"type": "DOCTOR_PATIENT_ASSIGNED", "doctorId": "d1", "patientId": "p1"}

    def test_renders_timestamps_as_utc_iso(self):
        """Datetimes are serialized as ISO-8601 with a Z suffix."""
        deleted_at = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
        payload = envelope.to_wire(events.UserDeleted(id="u1", deleted_at=deleted_at))
        assert payload["deletedAt"] == "2025-03-01T09:30:00.000Z"

    def test_event_key_follows_aggregate(self):
        """Assignments are keyed by patient, everything else by id."""
        assert envelope.event_key(events.DoctorPatientUnassigned(doctor_id="d1", patient_id="p1")) == "p1"
        assert envelope.event_key(events.AppointmentCreated(id="a1")) == "a1"


class TestFromWire:
    def test_resolves_registered_type(self):
        """A registered (topic, type) pair becomes its event class."""
        event = envelope.from_wire(USER_EVENTS_TOPIC, {"type": "USER_CREATED", "id": "u1", "role": "doctor"})
        assert isinstance(event, events.UserCreated)
        assert event.role == "doctor"

    def test_ignores_unknown_fields(self):
        """Producers may add fields that older consumers do not know."""
        event = envelope.from_wire(
            APPOINTMENT_EVENTS_TOPIC,
            {"type": "APPOINTMENT_CREATED", "id": "a1", "roomNumber": 12, "startTime": "2025-01-01T10:00:00Z"},
        )
        assert event.start_time == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_type_on_wrong_topic_is_unknown(self):
        """Types are scoped to their topic."""
        with pytest.raises(UnknownEventType):
            envelope.from_wire(PATIENT_EVENTS_TOPIC, {"type": "USER_CREATED", "id": "u1"})

    def test_missing_aggregate_key_is_malformed(self):
        """Assignment events need both ids."""
        with pytest.raises(MalformedMessage):
            envelope.from_wire(DOCTOR_ASSIGNMENT_TOPIC, {"type": "DOCTOR_PATIENT_ASSIGNED", "doctorId": "d1"})

    def test_patient_deleted_accepts_user_id_only(self):
        """PATIENT_DELETED may address the profile through its owning user."""
        event = envelope.from_wire(PATIENT_EVENTS_TOPIC, {"type": "PATIENT_DELETED", "userId": "u7"})
        assert event.id is None
        assert event.user_id == "u7"

    def test_patient_deleted_without_any_id_is_malformed(self):
        with pytest.raises(MalformedMessage):
            envelope.from_wire(PATIENT_EVENTS_TOPIC, {"type": "PATIENT_DELETED"})


class TestDecode:
    @pytest.mark.parametrize("raw", [None, "not json", "[1, 2]", '{"id": "x"}'])
    def test_rejects_unusable_bodies(self, raw):
        """Bodies that are not a typed JSON object are malformed."""
        with pytest.raises(MalformedMessage):
            envelope.decode(raw)

    def test_accepts_bytes(self):
        assert envelope.decode(b'{"type": "USER_CREATED"}') == {"type": "USER_CREATED"}
