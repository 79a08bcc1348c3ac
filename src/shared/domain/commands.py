"""Message bases: commands are handled by exactly one service, events are broadcast."""

from dataclasses import dataclass


@dataclass
class Command:
    """A request to change state owned by the receiving service."""
    pass


@dataclass
class Event:
    """
    A fact one service announces to the others over the event bus.

    Subclasses declare TOPIC, TYPE and KEY_FIELD as class variables.
    """
    pass
