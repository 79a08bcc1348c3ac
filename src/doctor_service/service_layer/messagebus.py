"""Message bus for doctor service following Cosmic Python pattern."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Type

from doctor_service.domain import commands
from doctor_service.service_layer import handlers
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
}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    commands.AssignPatient: handlers.assign_patient,
    commands.UnassignPatient: handlers.unassign_patient,
}  # type: Dict[Type[Command], Callable]

bus = MessageBus(EVENT_HANDLERS, COMMAND_HANDLERS)
