"""Domain events exchanged between services over the event bus."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Dict, List, Optional, Tuple, Type

from shared.domain.commands import Event
from shared.domain.topics import (
    APPOINTMENT_EVENTS_TOPIC,
    DOCTOR_ASSIGNMENT_TOPIC,
    PATIENT_EVENTS_TOPIC,
    PRESCRIPTION_EVENTS_TOPIC,
    USER_EVENTS_TOPIC,
)


@dataclass
class UserEvent(Event):
    TOPIC: ClassVar[str] = USER_EVENTS_TOPIC
    TYPE: ClassVar[str] = ""
    KEY_FIELD: ClassVar[str] = "id"
    REQUIRED: ClassVar[Tuple[str, ...]] = ("id",)

    id: str
    role: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    deleted_at: Optional[datetime] = None
    emitted_at: Optional[datetime] = None


@dataclass
class UserCreated(UserEvent):
    TYPE: ClassVar[str] = "USER_CREATED"


@dataclass
class UserUpdated(UserEvent):
    TYPE: ClassVar[str] = "USER_UPDATED"


@dataclass
class UserDeleted(UserEvent):
    TYPE: ClassVar[str] = "USER_DELETED"


@dataclass
class PatientEvent(Event):
    TOPIC: ClassVar[str] = PATIENT_EVENTS_TOPIC
    TYPE: ClassVar[str] = ""
    KEY_FIELD: ClassVar[str] = "id"
    REQUIRED: ClassVar[Tuple[str, ...]] = ("id",)

    id: Optional[str] = None
    user_id: Optional[str] = None
    name: Optional[str] = None
    dob: Optional[str] = None
    conditions: List[str] = field(default_factory=list)
    deleted_at: Optional[datetime] = None
    emitted_at: Optional[datetime] = None


@dataclass
class PatientCreated(PatientEvent):
    TYPE: ClassVar[str] = "PATIENT_CREATED"


@dataclass
class PatientDeleted(PatientEvent):
    """Addressed by id, or by user_id when the emitter only knows the account."""
    TYPE: ClassVar[str] = "PATIENT_DELETED"
    REQUIRED: ClassVar[Tuple[str, ...]] = ()
    REQUIRED_ONE_OF: ClassVar[Tuple[str, ...]] = ("id", "user_id")


@dataclass
class AssignmentEvent(Event):
    TOPIC: ClassVar[str] = DOCTOR_ASSIGNMENT_TOPIC
    TYPE: ClassVar[str] = ""
    # same-patient events stay ordered relative to each other
    KEY_FIELD: ClassVar[str] = "patient_id"
    REQUIRED: ClassVar[Tuple[str, ...]] = ("doctor_id", "patient_id")

    doctor_id: str
    patient_id: str
    deleted_at: Optional[datetime] = None
    emitted_at: Optional[datetime] = None


@dataclass
class DoctorPatientAssigned(AssignmentEvent):
    TYPE: ClassVar[str] = "DOCTOR_PATIENT_ASSIGNED"


@dataclass
class DoctorPatientUnassigned(AssignmentEvent):
    TYPE: ClassVar[str] = "DOCTOR_PATIENT_UNASSIGNED"


@dataclass
class AppointmentEvent(Event):
    TOPIC: ClassVar[str] = APPOINTMENT_EVENTS_TOPIC
    TYPE: ClassVar[str] = ""
    KEY_FIELD: ClassVar[str] = "id"
    REQUIRED: ClassVar[Tuple[str, ...]] = ("id",)

    id: str
    patient_user_id: Optional[str] = None
    doctor_user_id: Optional[str] = None
    date: Optional[str] = None
    slot: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[str] = None
    deleted_at: Optional[datetime] = None
    emitted_at: Optional[datetime] = None


@dataclass
class AppointmentCreated(AppointmentEvent):
    TYPE: ClassVar[str] = "APPOINTMENT_CREATED"


@dataclass
class AppointmentUpdated(AppointmentEvent):
    TYPE: ClassVar[str] = "APPOINTMENT_UPDATED"


@dataclass
class AppointmentApproved(AppointmentEvent):
    TYPE: ClassVar[str] = "APPOINTMENT_APPROVED"


@dataclass
class AppointmentDenied(AppointmentEvent):
    TYPE: ClassVar[str] = "APPOINTMENT_DENIED"


@dataclass
class AppointmentCancelled(AppointmentEvent):
    TYPE: ClassVar[str] = "APPOINTMENT_CANCELLED"


@dataclass
class AppointmentDeleted(AppointmentEvent):
    TYPE: ClassVar[str] = "APPOINTMENT_DELETED"


@dataclass
class PrescriptionEvent(Event):
    TOPIC: ClassVar[str] = PRESCRIPTION_EVENTS_TOPIC
    TYPE: ClassVar[str] = ""
    KEY_FIELD: ClassVar[str] = "id"
    REQUIRED: ClassVar[Tuple[str, ...]] = ("id",)

    id: str
    patient_id: Optional[str] = None
    medication: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    deleted_at: Optional[datetime] = None
    emitted_at: Optional[datetime] = None


@dataclass
class PrescriptionRequestCreated(PrescriptionEvent):
    TYPE: ClassVar[str] = "PRESCRIPTION_REQUEST_CREATED"


@dataclass
class PrescriptionRequestStatusChanged(PrescriptionEvent):
    TYPE: ClassVar[str] = "PRESCRIPTION_REQUEST_STATUS_CHANGED"


@dataclass
class PrescriptionRequestDeleted(PrescriptionEvent):
    TYPE: ClassVar[str] = "PRESCRIPTION_REQUEST_DELETED"


def _registry(*event_classes) -> Dict[str, Dict[str, Type[Event]]]:
    registry = {}  # type: Dict[str, Dict[str, Type[Event]]]
    for event_class in event_classes:
        registry.setdefault(event_class.TOPIC, {})[event_class.TYPE] = event_class
    return registry


# (topic, type) -> event class; the closed set of events each topic carries
EVENT_TYPES = _registry(
    UserCreated,
    UserUpdated,
    UserDeleted,
    PatientCreated,
    PatientDeleted,
    DoctorPatientAssigned,
    DoctorPatientUnassigned,
    AppointmentCreated,
    AppointmentUpdated,
    AppointmentApproved,
    AppointmentDenied,
    AppointmentCancelled,
    AppointmentDeleted,
    PrescriptionRequestCreated,
    PrescriptionRequestStatusChanged,
    PrescriptionRequestDeleted,
)
