"""Commands for the admin service."""

from dataclasses import dataclass
from typing import Optional

from shared.domain.commands import Command


@dataclass
class ReassignDoctor(Command):
    """Move a patient to doctor_id, or leave them without a doctor when it is None."""
    patient_id: str
    doctor_id: Optional[str] = None
