"""Commands for the patient service."""

from dataclasses import dataclass, field
from typing import List, Optional

from shared.domain.commands import Command


@dataclass
class CreatePatientProfile(Command):
    user_id: str
    name: Optional[str] = None
    dob: Optional[str] = None
    conditions: List[str] = field(default_factory=list)
    patient_id: Optional[str] = None


@dataclass
class DeletePatient(Command):
    """Delete by profile id, or by owning user when patient_id is not known."""
    patient_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass
class CreatePrescriptionRequest(Command):
    user_id: str
    medication: str
    notes: Optional[str] = None


@dataclass
class ChangePrescriptionStatus(Command):
    request_id: str
    status: str
