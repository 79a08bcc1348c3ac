"""
Appointment booking domain: statuses, booking windows and the event payloads
built from stored appointments.
"""

import re
from dataclasses import dataclass, replace
from datetime import date as date_type, datetime, timedelta, timezone
from typing import Optional, Type

from shared.domain.errors import InvalidBookingRequest
from shared.domain.events import AppointmentEvent
from shared.domain.model import Appointment
from shared.domain.timestamps import parse_timestamp

DEFAULT_DURATION = timedelta(minutes=30)

_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLOT = re.compile(r"^\d{2}:\d{2}$")
_SLOT_WITH_SECONDS = re.compile(r"^\d{2}:\d{2}:\d{2}$")


class AppointmentStatus:
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"

    ALL = (PENDING, APPROVED, DENIED, CANCELLED)


def normalize_date(value) -> Optional[str]:
    """YYYY-MM-DD from a date string, an ISO timestamp or a date object."""
    if not value:
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        if _DATE.match(trimmed):
            return trimmed
        if "T" in trimmed:
            return normalize_date(trimmed.split("T")[0])
    if isinstance(value, date_type) and not isinstance(value, datetime):
        return value.isoformat()
    parsed = parse_timestamp(value)
    return parsed.date().isoformat() if parsed else None


def normalize_slot(value) -> Optional[str]:
    """HH:MM from a time string or an ISO timestamp."""
    if not value:
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        if _SLOT.match(trimmed):
            return trimmed
        if _SLOT_WITH_SECONDS.match(trimmed):
            return trimmed[:5]
    parsed = parse_timestamp(value)
    return parsed.strftime("%H:%M") if parsed else None


def combine(date: Optional[str], slot: Optional[str]) -> Optional[datetime]:
    """Start of a (date, slot) pair, read as UTC."""
    if not date or not slot:
        return None
    try:
        return datetime.strptime(f"{date} {slot}", "%Y-%m-%d %H:%M").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


@dataclass(frozen=True)
class BookingWindow:
    """Normalized booking request: the (date, slot) pair and the [start, end) range it covers."""

    date: str
    slot: str
    start: datetime
    end: datetime

    @classmethod
    def from_request(
        cls,
        date=None,
        slot=None,
        start_time=None,
        end_time=None,
        duration: timedelta = DEFAULT_DURATION,
    ) -> "BookingWindow":
        start = parse_timestamp(start_time)
        end = parse_timestamp(end_time)
        date = normalize_date(date)
        slot = normalize_slot(slot)

        if start is not None:
            date = date or start.date().isoformat()
            slot = slot or start.strftime("%H:%M")
        if not date or not slot:
            raise InvalidBookingRequest("Missing date/slot information for appointment.")

        start = start or combine(date, slot)
        if start is None:
            raise InvalidBookingRequest(f"Invalid date/slot value: {date} {slot}")
        end = end or start + duration
        if end <= start:
            raise InvalidBookingRequest("Appointment must end after it starts.")
        return cls(date=date, slot=slot, start=start, end=end)

    @classmethod
    def rescheduled(
        cls,
        existing: Appointment,
        date=None,
        slot=None,
        start_time=None,
        end_time=None,
        duration: timedelta = DEFAULT_DURATION,
    ) -> "BookingWindow":
        """Window after applying whichever of date, slot, start or end changed."""
        if start_time is not None:
            return cls.from_request(date, slot, start_time, end_time, duration)
        if date is None and slot is None:
            return cls.from_request(
                existing.date,
                existing.slot,
                existing.start_time,
                end_time or existing.end_time,
                duration,
            )
        return cls.from_request(date or existing.date, slot or existing.slot, None, end_time, duration)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


def with_derived_times(appointment: Appointment, duration: timedelta = DEFAULT_DURATION) -> Appointment:
    """Fill start/end from (date, slot) for rows kept in a store without time columns."""
    start = appointment.start_time or combine(appointment.date, appointment.slot)
    end = appointment.end_time or (start + duration if start else None)
    return replace(
        appointment,
        start_time=start,
        end_time=end,
        date=appointment.date or (start.date().isoformat() if start else None),
        slot=appointment.slot or (start.strftime("%H:%M") if start else None),
    )


def appointment_event(
    event_class: Type[AppointmentEvent],
    appointment: Appointment,
    deleted_at: Optional[datetime] = None,
) -> AppointmentEvent:
    full = with_derived_times(appointment)
    return event_class(
        id=full.id,
        patient_user_id=full.patient_user_id,
        doctor_user_id=full.doctor_user_id,
        date=full.date,
        slot=full.slot,
        start_time=full.start_time,
        end_time=full.end_time,
        status=full.status,
        deleted_at=deleted_at or full.deleted_at,
    )
