"""Projection rows held by the service stores."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class UserDirectoryEntry:
    id: str
    role: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_doctor(self) -> bool:
        return self.role == "doctor"


@dataclass
class DoctorRecord:
    id: str
    specialty: Optional[str] = None
    deleted_at: Optional[datetime] = None


@dataclass
class PatientProfile:
    id: str
    user_id: str
    name: Optional[str] = None
    dob: Optional[str] = None
    conditions: List[str] = field(default_factory=list)
    deleted_at: Optional[datetime] = None


@dataclass
class Assignment:
    doctor_id: str
    patient_id: str
    id: Optional[int] = None
    assigned_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def active(self) -> bool:
        return self.deleted_at is None


@dataclass
class Appointment:
    id: str
    doctor_user_id: Optional[str] = None
    patient_user_id: Optional[str] = None
    date: Optional[str] = None
    slot: Optional[str] = None
    status: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


@dataclass
class PrescriptionRequest:
    id: str
    patient_id: Optional[str] = None
    medication: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    deleted_at: Optional[datetime] = None
