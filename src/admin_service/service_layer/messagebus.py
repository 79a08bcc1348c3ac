"""Message bus for admin service following Cosmic Python pattern."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Type

from admin_service.domain import commands
from admin_service.service_layer import handlers
from shared.domain import events
from shared.domain.commands import Command, Event
from shared.service_layer.messagebus import Message, MessageBus

if TYPE_CHECKING:
    from shared.adapters.eventbus import MessageBusClient
    from shared.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def handle(message: Message, uow: AbstractUnitOfWork, publisher: MessageBusClient = None):
    """Handle message (command or event) with the appropriate handler."""
    return bus.handle(message, uow, publisher)


EVENT_HANDLERS = {
    events.UserCreated: [handlers.upsert_user],
    events.UserUpdated: [handlers.upsert_user],
    events.UserDeleted: [handlers.delete_user],
    events.PatientCreated: [handlers.upsert_patient],
    events.PatientDeleted: [handlers.delete_patient],
    events.DoctorPatientAssigned: [handlers.apply_assigned],
    events.DoctorPatientUnassigned: [handlers.apply_unassigned],
    events.AppointmentCreated: [handlers.upsert_appointment],
    events.AppointmentUpdated: [handlers.upsert_appointment],
    events.AppointmentApproved: [handlers.upsert_appointment],
    events.AppointmentDenied: [handlers.upsert_appointment],
    events.AppointmentCancelled: [handlers.upsert_appointment],
    events.AppointmentDeleted: [handlers.delete_appointment],
    events.PrescriptionRequestCreated: [handlers.upsert_prescription],
    events.PrescriptionRequestStatusChanged: [handlers.upsert_prescription],
    events.PrescriptionRequestDeleted: [handlers.delete_prescription],
}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    commands.ReassignDoctor: handlers.reassign_doctor,
}  # type: Dict[Type[Command], Callable]

bus = MessageBus(EVENT_HANDLERS, COMMAND_HANDLERS)
