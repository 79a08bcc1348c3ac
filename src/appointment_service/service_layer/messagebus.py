"""Message bus for appointment service following Cosmic Python pattern."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Type

from appointment_service.domain import commands
from appointment_service.service_layer import handlers
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
}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    commands.BookAppointment: handlers.book_appointment,
    commands.RescheduleAppointment: handlers.reschedule_appointment,
    commands.ApproveAppointment: handlers.approve_appointment,
    commands.DenyAppointment: handlers.deny_appointment,
    commands.CancelAppointment: handlers.cancel_appointment,
    commands.DeleteAppointment: handlers.delete_appointment,
}  # type: Dict[Type[Command], Callable]

bus = MessageBus(EVENT_HANDLERS, COMMAND_HANDLERS)
