"""Event envelope parsing for identity provider webhooks.

Envelope shape:
    {"type": "user.created", "object": "event", "data": {...user object...}}

Unknown event types are not an error: they decode to EventKind.UNHANDLED so
the dispatcher can acknowledge them without touching the store.
"""
from __future__ import annotations
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .exceptions import MalformedEnvelope


class EventKind(Enum):
    CREATED = "user.created"
    UPDATED = "user.updated"
    DELETED = "user.deleted"
    UNHANDLED = "unhandled"

    @classmethod
    def from_type(cls, event_type: str) -> "EventKind":
        for kind in (cls.CREATED, cls.UPDATED, cls.DELETED):
            if kind.value == event_type:
                return kind
        return cls.UNHANDLED


# Source keys tracked for partial updates
ACCOUNT_FIELDS = ("email_addresses", "username", "first_name", "last_name", "image_url")


@dataclass(frozen=True)
class AccountPayload:
    """Account fields carried by a user.* event.

    ``provided`` holds the source keys present in the delivery, so an update
    can tell an absent field (keep stored value) from an explicitly cleared
    one (apply default).
    """
    external_id: str
    email_addresses: tuple[str, ...] = ()
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    provided: frozenset[str] = field(default_factory=frozenset)

    @property
    def primary_email(self) -> Optional[str]:
        return self.email_addresses[0] if self.email_addresses else None


@dataclass(frozen=True)
class Event:
    kind: EventKind
    type: str
    payload: Optional[AccountPayload] = None
    data: dict = field(default_factory=dict)

    @property
    def external_id(self) -> Optional[str]:
        """External identity for logging and correlation."""
        if self.payload is not None:
            return self.payload.external_id
        raw_id = self.data.get("id") if isinstance(self.data, dict) else None
        return raw_id if isinstance(raw_id, str) else None


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _email_addresses(data: dict) -> tuple[str, ...]:
    entries = data.get("email_addresses") or []
    if not isinstance(entries, list):
        return ()
    emails = []
    for entry in entries:
        if isinstance(entry, dict):
            address = entry.get("email_address")
            if isinstance(address, str) and address.strip():
                emails.append(address.strip())
    return tuple(emails)


def parse_account_payload(data: dict) -> AccountPayload:
    """Build an AccountPayload from a user object.

    Raises:
        MalformedEnvelope: If the user object has no external identity
    """
    external_id = data.get("id")
    if not isinstance(external_id, str) or not external_id.strip():
        raise MalformedEnvelope("Event data is missing the account id")

    return AccountPayload(
        external_id=external_id.strip(),
        email_addresses=_email_addresses(data),
        username=_optional_str(data, "username"),
        first_name=_optional_str(data, "first_name"),
        last_name=_optional_str(data, "last_name"),
        image_url=_optional_str(data, "image_url"),
        provided=frozenset(key for key in ACCOUNT_FIELDS if key in data),
    )


def parse_event(body: bytes) -> Event:
    """Decode a verified request body into a typed Event.

    Args:
        body: Raw request body (already signature-verified)

    Returns:
        Event with kind, raw type, payload (known kinds only) and raw data

    Raises:
        MalformedEnvelope: If the body is not a JSON object with a string
            ``type``, or a known kind lacks ``data.id``
    """
    try:
        envelope: Any = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedEnvelope(f"Body is not valid JSON: {exc}")

    if not isinstance(envelope, dict):
        raise MalformedEnvelope("Event envelope must be a JSON object")

    event_type = envelope.get("type")
    if not isinstance(event_type, str) or not event_type.strip():
        raise MalformedEnvelope("Event envelope is missing 'type'")

    kind = EventKind.from_type(event_type)
    data = envelope.get("data")

    if kind is EventKind.UNHANDLED:
        return Event(kind=kind, type=event_type, data=data if isinstance(data, dict) else {})

    if not isinstance(data, dict):
        raise MalformedEnvelope(f"Event '{event_type}' is missing its 'data' object")

    return Event(kind=kind, type=event_type, payload=parse_account_payload(data), data=data)
