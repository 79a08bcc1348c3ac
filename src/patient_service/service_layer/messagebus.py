"""Message bus for patient service following Cosmic Python pattern."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Type

from patient_service.domain import commands
from patient_service.service_layer import handlers
from shared.domain.commands import Command, Event
from shared.service_layer.messagebus import Message, MessageBus

if TYPE_CHECKING:
    from shared.adapters.eventbus import MessageBusClient
    from shared.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def handle(message: Message, uow: AbstractUnitOfWork, publisher: MessageBusClient = None):
    """Handle message (command or event) with the appropriate handler."""
    return bus.handle(message, uow, publisher)


# The patient service is a pure producer; it subscribes to nothing
EVENT_HANDLERS = {}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    commands.CreatePatientProfile: handlers.create_patient_profile,
    commands.DeletePatient: handlers.delete_patient,
    commands.CreatePrescriptionRequest: handlers.create_prescription_request,
    commands.ChangePrescriptionStatus: handlers.change_prescription_status,
}  # type: Dict[Type[Command], Callable]

bus = MessageBus(EVENT_HANDLERS, COMMAND_HANDLERS)
