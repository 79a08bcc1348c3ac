"""Commands for the doctor service."""

from dataclasses import dataclass

from shared.domain.commands import Command


@dataclass
class AssignPatient(Command):
    """Make doctor_id the patient's doctor, replacing any previous one."""
    doctor_id: str
    patient_id: str


@dataclass
class UnassignPatient(Command):
    doctor_id: str
    patient_id: str
