"""Unit tests for doctor/patient assignment bookkeeping."""
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from doctor_service.adapters import orm
from shared.service_layer.assignments import AssignmentCoordinator, change_events

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def session(doctor_session_factory):
    session = doctor_session_factory()
    yield session
    session.close()


@pytest.fixture
def coordinator(session):
    return AssignmentCoordinator(session, orm.doctor_patient_map, clock=lambda: T0)


def row_count(session):
    return session.execute(select(func.count()).select_from(orm.doctor_patient_map)).scalar()


class TestAssign:
    def test_first_assignment_inserts_row(self, coordinator, session):
        change = coordinator.assign("d1", "p1")
        assert change.activated.doctor_id == "d1"
        assert change.displaced == []
        assert coordinator.active_for_patient("p1").doctor_id == "d1"
        assert row_count(session) == 1

    def test_reassigning_same_pair_changes_nothing(self, coordinator):
        coordinator.assign("d1", "p1")
        change = coordinator.assign("d1", "p1")
        assert not change.changed
        assert change_events(change) == []

    def test_new_doctor_displaces_old_one(self, coordinator):
        """A patient has at most one active doctor."""
        coordinator.assign("d1", "p1")
        change = coordinator.assign("d2", "p1")

        assert [a.doctor_id for a in change.displaced] == ["d1"]
        assert coordinator.active_for_patient("p1").doctor_id == "d2"
        assert [e.TYPE for e in change_events(change)] == [
            "DOCTOR_PATIENT_UNASSIGNED",
            "DOCTOR_PATIENT_ASSIGNED",
        ]

    def test_reassignment_reuses_the_pair_row(self, coordinator, session):
        """Unassign then assign again clears the tombstone instead of adding a row."""
        coordinator.assign("d1", "p1")
        coordinator.unassign("d1", "p1")
        change = coordinator.assign("d1", "p1")

        assert change.activated is not None
        assert change.activated.deleted_at is None
        assert row_count(session) == 1


class TestRelease:
    def test_release_doctor_only_reports_active_rows(self, coordinator):
        coordinator.assign("d1", "p1")
        coordinator.assign("d1", "p2")
        coordinator.assign("d1", "p3")
        coordinator.unassign("d1", "p3")

        released = coordinator.release_doctor("d1")

        assert sorted(a.patient_id for a in released) == ["p1", "p2"]
        assert all(a.deleted_at == T0 for a in released)
        assert coordinator.release_doctor("d1") == []

    def test_release_patient(self, coordinator):
        coordinator.assign("d1", "p1")
        assert [a.doctor_id for a in coordinator.release_patient("p1")] == ["d1"]
        assert coordinator.active_for_patient("p1") is None

    def test_unassign_unknown_pair_is_a_no_op(self, coordinator):
        assert coordinator.unassign("d9", "p9") == []

    def test_active_for_doctor_is_sorted(self, coordinator):
        coordinator.assign("d1", "p2")
        coordinator.assign("d1", "p1")
        assert [a.patient_id for a in coordinator.active_for_doctor("d1")] == ["p1", "p2"]
