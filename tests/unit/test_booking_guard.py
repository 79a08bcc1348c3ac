"""Unit tests for the double-booking guard on current and legacy appointment stores."""
from datetime import datetime, timezone

import pytest
from sqlalchemy import insert, text

from appointment_service.adapters import orm
from appointment_service.domain.model import BookingWindow
from appointment_service.service_layer.booking_guard import BookingConflictGuard


def utc(hour, minute=0):
    return datetime(2025, 1, 1, hour, minute, tzinfo=timezone.utc)


def add_appointment(session, appointment_id, slot, doctor="d1", with_times=True, deleted=False):
    """Store an appointment on 2025-01-01 lasting thirty minutes from slot."""
    window = BookingWindow.from_request("2025-01-01", slot)
    values = dict(
        id=appointment_id,
        doctor_user_id=doctor,
        patient_user_id="p1",
        date=window.date,
        slot=window.slot,
        status="pending",
        deleted_at=utc(0) if deleted else None,
    )
    if with_times:
        values.update(start_time=window.start, end_time=window.end)
    session.execute(insert(orm.appointments).values(**values))
    session.commit()


@pytest.fixture
def session(appointment_session_factory):
    session = appointment_session_factory()
    yield session
    session.close()


@pytest.fixture
def legacy_session(legacy_appointment_session_factory):
    session = legacy_appointment_session_factory()
    yield session
    session.close()


class TestRangeOverlap:
    def test_overlapping_booking_conflicts(self, session):
        """10:15-10:45 collides with 10:00-10:30 for the same doctor."""
        add_appointment(session, "a1", "10:00")
        guard = BookingConflictGuard()

        conflict = guard.check_conflict(session, "d1", BookingWindow.from_request("2025-01-01", "10:15"))

        assert conflict is not None
        assert conflict.kind == "overlap"
        assert conflict.appointment_id == "a1"

    def test_back_to_back_booking_is_fine(self, session):
        add_appointment(session, "a1", "10:00")
        guard = BookingConflictGuard()
        assert guard.check_conflict(session, "d1", BookingWindow.from_request("2025-01-01", "10:30")) is None

    def test_other_doctor_is_not_affected(self, session):
        add_appointment(session, "a1", "10:00", doctor="d2")
        guard = BookingConflictGuard()
        assert guard.check_conflict(session, "d1", BookingWindow.from_request("2025-01-01", "10:00")) is None

    def test_deleted_appointments_free_their_time(self, session):
        add_appointment(session, "a1", "10:00", deleted=True)
        guard = BookingConflictGuard()
        assert guard.check_conflict(session, "d1", BookingWindow.from_request("2025-01-01", "10:00")) is None

    def test_excluded_appointment_does_not_conflict_with_itself(self, session):
        """Rescheduling an appointment into a window overlapping its old one is allowed."""
        add_appointment(session, "a1", "10:00")
        guard = BookingConflictGuard()
        window = BookingWindow.from_request("2025-01-01", "10:15")
        assert guard.check_conflict(session, "d1", window, exclude_id="a1") is None


class TestLegacySchema:
    def test_falls_back_to_exact_slot(self, legacy_session):
        """Without time columns only the same (date, slot) collides."""
        add_appointment(legacy_session, "a1", "10:00", with_times=False)
        guard = BookingConflictGuard()

        conflict = guard.check_conflict(legacy_session, "d1", BookingWindow.from_request("2025-01-01", "10:00"))
        assert conflict.kind == "slot_taken"
        assert guard.capabilities.has_time_columns is False

        # partial overlap goes unnoticed without ranges
        assert guard.check_conflict(legacy_session, "d1", BookingWindow.from_request("2025-01-01", "10:15")) is None

    def test_probe_is_cached_until_refresh(self, legacy_session):
        """A migrated schema is only picked up after refresh()."""
        guard = BookingConflictGuard()
        assert guard.capabilities_for(legacy_session).has_time_columns is False

        legacy_session.execute(text("ALTER TABLE appointments ADD COLUMN start_time DATETIME"))
        legacy_session.execute(text("ALTER TABLE appointments ADD COLUMN end_time DATETIME"))
        legacy_session.commit()

        assert guard.capabilities_for(legacy_session).has_time_columns is False
        guard.refresh()
        assert guard.capabilities_for(legacy_session).has_time_columns is True

    def test_probe_expires_after_max_age(self, legacy_session):
        now = [100.0]
        guard = BookingConflictGuard(max_age_seconds=60, clock=lambda: now[0])
        first = guard.capabilities_for(legacy_session)

        now[0] += 30
        assert guard.capabilities_for(legacy_session) is first
        now[0] += 31
        assert guard.capabilities_for(legacy_session) is not first
