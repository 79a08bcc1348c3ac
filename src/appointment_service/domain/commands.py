"""Commands for the appointment service."""

from dataclasses import dataclass
from typing import Optional

from shared.domain.commands import Command


@dataclass
class BookAppointment(Command):
    """Book a pending appointment. Date/slot and start/end may be given in any usable combination."""
    patient_user_id: str
    doctor_user_id: str
    date: Optional[str] = None
    slot: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    appointment_id: Optional[str] = None


@dataclass
class RescheduleAppointment(Command):
    appointment_id: str
    doctor_user_id: Optional[str] = None
    patient_user_id: Optional[str] = None
    date: Optional[str] = None
    slot: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: Optional[str] = None


@dataclass
class ApproveAppointment(Command):
    appointment_id: str
    doctor_user_id: str


@dataclass
class DenyAppointment(Command):
    appointment_id: str
    doctor_user_id: str


@dataclass
class CancelAppointment(Command):
    """Cancel as one of the two parties; None skips the party check."""
    appointment_id: str
    requested_by: Optional[str] = None


@dataclass
class DeleteAppointment(Command):
    appointment_id: str
