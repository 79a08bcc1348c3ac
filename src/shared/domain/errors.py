"""Error kinds shared by the messaging layer and the service write paths."""


class MessagingError(Exception):
    """Base class for event bus failures. Never propagated to request handlers."""


class ConnectionTimeout(MessagingError):
    """The bounded broker connect was exceeded or refused."""


class PublishFailure(MessagingError):
    """The broker rejected a send or the connection dropped mid-send."""


class ConsumerConnectFailure(MessagingError):
    """The inbound connection or consumer group could not be established."""


class MalformedMessage(MessagingError):
    """A message could not be read as an event envelope."""


class UnknownEventType(MalformedMessage):
    """The (topic, type) pair is not in the topic registry."""


class ConflictDetected(Exception):
    """A write would violate a domain invariant held by another row."""


class AppointmentConflict(ConflictDetected):
    """The requested time is already booked for the doctor."""

    def __init__(self, conflict):
        self.conflict = conflict
        super().__init__(conflict.message)


class ProfileExists(ConflictDetected):
    """The user already has an active patient profile."""


class NotFound(Exception):
    """The addressed aggregate does not exist or is tombstoned."""


class AppointmentNotFound(NotFound):
    pass


class PatientNotFound(NotFound):
    pass


class DoctorNotFound(NotFound):
    pass


class PrescriptionNotFound(NotFound):
    pass


class InvalidBookingRequest(ValueError):
    """Date, slot or time inputs cannot be turned into a booking window."""
