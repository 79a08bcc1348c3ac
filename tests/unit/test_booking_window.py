"""Unit tests for booking window normalization."""
from datetime import datetime, timedelta, timezone

import pytest

from appointment_service.domain.model import BookingWindow, normalize_date, normalize_slot, with_derived_times
from shared.domain.errors import InvalidBookingRequest
from shared.domain.model import Appointment


def utc(hour, minute=0, day=1):
    return datetime(2025, 1, day, hour, minute, tzinfo=timezone.utc)


class TestNormalization:
    @pytest.mark.parametrize("value, expected", [
        ("2025-01-01", "2025-01-01"),
        ("2025-01-01T10:00:00Z", "2025-01-01"),
        (" 2025-01-01 ", "2025-01-01"),
        (None, None),
    ])
    def test_normalize_date(self, value, expected):
        assert normalize_date(value) == expected

    @pytest.mark.parametrize("value, expected", [
        ("10:00", "10:00"),
        ("10:00:30", "10:00"),
        ("2025-01-01T09:15:00Z", "09:15"),
        ("", None),
    ])
    def test_normalize_slot(self, value, expected):
        assert normalize_slot(value) == expected


class TestFromRequest:
    def test_date_and_slot_default_to_thirty_minutes(self):
        """Without an end time a booking lasts the default duration."""
        window = BookingWindow.from_request("2025-01-01", "10:00")
        assert window.start == utc(10)
        assert window.end == utc(10, 30)

    def test_start_time_fills_date_and_slot(self):
        window = BookingWindow.from_request(start_time="2025-01-01T14:45:00Z")
        assert (window.date, window.slot) == ("2025-01-01", "14:45")

    def test_explicit_end_time_wins(self):
        window = BookingWindow.from_request("2025-01-01", "10:00", end_time="2025-01-01T11:00:00Z")
        assert window.end == utc(11)

    def test_custom_duration(self):
        window = BookingWindow.from_request("2025-01-01", "10:00", duration=timedelta(minutes=45))
        assert window.end == utc(10, 45)

    @pytest.mark.parametrize("kwargs", [
        {},
        {"date": "2025-01-01"},
        {"date": "2025-13-45", "slot": "10:00"},
        {"date": "2025-01-01", "slot": "10:00", "end_time": "2025-01-01T09:00:00Z"},
    ])
    def test_rejects_unusable_requests(self, kwargs):
        with pytest.raises(InvalidBookingRequest):
            BookingWindow.from_request(**kwargs)


class TestRescheduled:
    EXISTING = Appointment(
        id="a1", date="2025-01-01", slot="10:00", start_time=utc(10), end_time=utc(10, 30),
    )

    def test_new_slot_keeps_date(self):
        window = BookingWindow.rescheduled(self.EXISTING, slot="11:00")
        assert (window.start, window.end) == (utc(11), utc(11, 30))

    def test_new_start_derives_new_end(self):
        """Moving the start without an end does not reuse the old end."""
        window = BookingWindow.rescheduled(self.EXISTING, start_time="2025-01-02T15:00:00Z")
        assert (window.start, window.end) == (utc(15, day=2), utc(15, 30, day=2))

    def test_only_end_changes(self):
        window = BookingWindow.rescheduled(self.EXISTING, end_time="2025-01-01T11:00:00Z")
        assert (window.start, window.end) == (utc(10), utc(11))


class TestOverlap:
    def test_half_open_ranges(self):
        """Back-to-back bookings touch but do not overlap."""
        window = BookingWindow.from_request("2025-01-01", "10:00")
        assert window.overlaps(utc(10, 15), utc(10, 45))
        assert not window.overlaps(utc(10, 30), utc(11))
        assert not window.overlaps(utc(9, 30), utc(10))


def test_with_derived_times_fills_legacy_rows():
    """Rows from a store without time columns get start/end from (date, slot)."""
    full = with_derived_times(Appointment(id="a1", date="2025-01-01", slot="10:00"))
    assert (full.start_time, full.end_time) == (utc(10), utc(10, 30))
