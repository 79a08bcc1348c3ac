"""Wire envelope for domain events: JSON objects with camelCase keys and a type tag."""

import json
from dataclasses import fields
from datetime import datetime
from typing import Any, Dict, Optional, Union

from shared.domain.commands import Event
from shared.domain.errors import MalformedMessage, UnknownEventType
from shared.domain.events import EVENT_TYPES
from shared.domain.timestamps import isoformat, parse_timestamp

TIMESTAMP_FIELDS = {"deleted_at", "emitted_at", "start_time", "end_time"}


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_wire(event: Event) -> Dict[str, Any]:
    """Serialize event to a wire payload, converting datetimes to ISO strings."""
    payload = {"type": event.TYPE}
    for f in fields(event):
        value = getattr(event, f.name)
        if value is None:
            continue
        if isinstance(value, datetime):
            value = isoformat(value)
        payload[camel_case(f.name)] = value
    return payload


def from_wire(topic: str, payload: Dict[str, Any]) -> Event:
    """
    Resolve (topic, payload["type"]) to an event instance.

    Unknown keys are ignored so producers can add fields without breaking
    older consumers.

    Raises:
        UnknownEventType: the pair is not registered for this topic
        MalformedMessage: the payload is missing its aggregate key
    """
    event_type = payload.get("type")
    event_class = EVENT_TYPES.get(topic, {}).get(event_type)
    if event_class is None:
        raise UnknownEventType(f"{event_type!r} is not a registered event on {topic!r}")

    kwargs = {}
    for f in fields(event_class):
        wire_name = camel_case(f.name)
        if wire_name not in payload:
            continue
        value = payload[wire_name]
        if f.name in TIMESTAMP_FIELDS:
            value = parse_timestamp(value)
        kwargs[f.name] = value

    missing = [name for name in event_class.REQUIRED if not kwargs.get(name)]
    if missing:
        raise MalformedMessage(f"{event_type} on {topic} is missing {', '.join(missing)}")
    one_of = getattr(event_class, "REQUIRED_ONE_OF", ())
    if one_of and not any(kwargs.get(name) for name in one_of):
        raise MalformedMessage(f"{event_type} on {topic} needs one of {', '.join(one_of)}")

    try:
        return event_class(**kwargs)
    except TypeError as e:
        raise MalformedMessage(f"Cannot build {event_class.__name__}: {e}") from e


def encode(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, default=str)


def decode(raw: Union[str, bytes, None]) -> Dict[str, Any]:
    """Parse a raw message body into an envelope dict."""
    if raw is None:
        raise MalformedMessage("Empty message body")
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessage(f"Failed to parse JSON from message: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedMessage(f"Envelope must be a JSON object, got {type(payload).__name__}")
    if not payload.get("type"):
        raise MalformedMessage("Envelope has no type")
    return payload


def event_key(event: Event) -> Optional[str]:
    return getattr(event, event.KEY_FIELD, None)
