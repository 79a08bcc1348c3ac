"""Runs a service's projection consumer in the foreground."""

import logging
import signal
from typing import Callable

from sqlalchemy import create_engine

import config
from shared.adapters.eventbus import MessageBusClient
from shared.domain.topics import CONSUMES, consumer_group
from shared.entrypoints.api import configure_logging
from shared.service_layer.projections import ProjectionApplier

logger = logging.getLogger(__name__)


def start_projections(
    service: str,
    handle: Callable,
    uow_factory: Callable,
    bus: MessageBusClient,
    autostart: bool = True,
):
    """Subscribe the service's projection applier. Returns None when the bus is unavailable."""
    applier = ProjectionApplier(handle, uow_factory, publisher=bus)
    return bus.consume(consumer_group(service), CONSUMES[service], applier, autostart=autostart)


def run(service: str, handle: Callable, uow_factory: Callable, create_tables: Callable) -> int:
    configure_logging()
    logger.info(f"{service} projection consumer starting")

    engine = create_engine(config.get_postgres_uri())
    create_tables(engine)
    logger.info("Database tables created")

    bus = MessageBusClient(service)
    consumer = start_projections(service, handle, uow_factory, bus, autostart=False)
    if consumer is None:
        logger.error(f"{service} cannot reach the event bus, exiting")
        bus.close()
        return 1

    signal.signal(signal.SIGTERM, lambda *_: consumer.stop())
    logger.info(f"Subscribed to {', '.join(consumer.topics)}, waiting for messages...")
    try:
        consumer.run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        bus.close()
    return 0
