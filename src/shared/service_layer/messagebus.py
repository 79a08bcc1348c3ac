# pylint: disable=broad-except
"""Message bus routing commands and events to the handlers of one service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type, Union

from shared.domain.commands import Command, Event

if TYPE_CHECKING:
    from shared.adapters.eventbus import MessageBusClient
    from shared.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

Message = Union[Command, Event]


class MessageBus:
    """
    Routes one message to its handlers and publishes what they commit.

    Events recorded on the unit of work go out on the event bus after each
    handler returns. They are not dispatched locally; every service sees
    its own events again through its consumer, like any other subscriber.
    """

    def __init__(
        self,
        event_handlers: Dict[Type[Event], List[Callable]],
        command_handlers: Dict[Type[Command], Callable],
    ):
        self.event_handlers = event_handlers
        self.command_handlers = command_handlers

    def handle(
        self,
        message: Message,
        uow: AbstractUnitOfWork,
        publisher: Optional[MessageBusClient] = None,
    ) -> Any:
        if isinstance(message, Event):
            return self.handle_event(message, uow, publisher)
        if isinstance(message, Command):
            return self.handle_command(message, uow, publisher)
        raise Exception(f"{message} was not an Event or Command")

    def handle_event(self, event: Event, uow: AbstractUnitOfWork, publisher=None) -> List[Any]:
        """Run every handler for event. A failing handler is logged and the next one runs."""
        handlers = self.event_handlers.get(type(event), [])
        if not handlers:
            logger.debug(f"No handlers registered for event {type(event).__name__}")

        results = []
        for handler in handlers:
            try:
                logger.debug(f"handling event {event} with handler {handler.__name__}")
                results.append(handler(event, uow=uow))
            except Exception:
                logger.exception("Exception handling event %s", event)
                continue
            finally:
                self.flush(uow, publisher)
        return results

    def handle_command(self, command: Command, uow: AbstractUnitOfWork, publisher=None) -> Any:
        logger.debug(f"handling command {command}")
        try:
            handler = self.command_handlers[type(command)]
            return handler(command, uow=uow)
        except Exception:
            logger.exception("Exception handling command %s", command)
            raise
        finally:
            self.flush(uow, publisher)

    @staticmethod
    def flush(uow: AbstractUnitOfWork, publisher=None) -> int:
        """Publish events committed by the last handler. Returns how many were handed over."""
        count = 0
        for event in uow.collect_new_events():
            count += 1
            if publisher is None:
                logger.debug(f"No publisher configured, dropping {event.TYPE}")
                continue
            publisher.publish_event(event)
        return count
