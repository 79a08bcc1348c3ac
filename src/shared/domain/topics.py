"""Topic registry: topic names and which service produces or consumes them."""

from typing import Dict, Tuple

USER_EVENTS_TOPIC = "user.events"
PATIENT_EVENTS_TOPIC = "patient.events"
DOCTOR_ASSIGNMENT_TOPIC = "doctor-patient.events"
APPOINTMENT_EVENTS_TOPIC = "appointment.events"
PRESCRIPTION_EVENTS_TOPIC = "prescription.events"

ALL_TOPICS = (
    USER_EVENTS_TOPIC,
    PATIENT_EVENTS_TOPIC,
    DOCTOR_ASSIGNMENT_TOPIC,
    APPOINTMENT_EVENTS_TOPIC,
    PRESCRIPTION_EVENTS_TOPIC,
)

AUTH_SERVICE = "auth-service"
PATIENT_SERVICE = "patient-service"
DOCTOR_SERVICE = "doctor-service"
APPOINTMENT_SERVICE = "appointment-service"
ADMIN_SERVICE = "admin-service"

PRODUCES = {
    AUTH_SERVICE: (USER_EVENTS_TOPIC,),
    PATIENT_SERVICE: (PATIENT_EVENTS_TOPIC, PRESCRIPTION_EVENTS_TOPIC),
    DOCTOR_SERVICE: (DOCTOR_ASSIGNMENT_TOPIC,),
    APPOINTMENT_SERVICE: (APPOINTMENT_EVENTS_TOPIC,),
    ADMIN_SERVICE: (DOCTOR_ASSIGNMENT_TOPIC,),
}  # type: Dict[str, Tuple[str, ...]]

CONSUMES = {
    DOCTOR_SERVICE: (USER_EVENTS_TOPIC, PATIENT_EVENTS_TOPIC, DOCTOR_ASSIGNMENT_TOPIC),
    APPOINTMENT_SERVICE: (USER_EVENTS_TOPIC, PATIENT_EVENTS_TOPIC),
    ADMIN_SERVICE: ALL_TOPICS,
}  # type: Dict[str, Tuple[str, ...]]


def consumer_group(service: str) -> str:
    """Each service reads under its own group so every service sees every message."""
    return f"{service}-projections"
