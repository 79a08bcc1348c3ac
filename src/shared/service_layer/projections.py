"""Turns messages from the event bus into local projection writes."""

import logging
from typing import Any, Callable, Dict, Optional

from shared.adapters import envelope
from shared.domain.errors import UnknownEventType
from shared.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class ProjectionApplier:
    """
    Consumer callback for one service.

    Resolves the wire payload to a domain event and hands it to the
    service's message bus with a fresh unit of work. Events the service
    has no handler for are dropped there; events no service knows about are
    dropped here.
    """

    def __init__(
        self,
        handle: Callable,
        uow_factory: Callable[[], AbstractUnitOfWork],
        publisher=None,
    ):
        self.handle = handle
        self.uow_factory = uow_factory
        self.publisher = publisher

    def __call__(self, topic: str, payload: Dict[str, Any]) -> Optional[Any]:
        try:
            event = envelope.from_wire(topic, payload)
        except UnknownEventType as e:
            logger.debug(f"Ignoring message on {topic}: {e}")
            return None

        logger.info(f"Applying {event.TYPE} from {topic}")
        return self.handle(event, self.uow_factory(), self.publisher)
