"""Webhook delivery authentication (Svix signing scheme).

A delivery is signed as::

    base64(HMAC-SHA256(key, f"{delivery_id}.{timestamp}." + body))

and the signature header carries one or more space-separated ``v1,<sig>``
entries (several while the provider rotates secrets). Binding the id and
timestamp into the MAC stops a captured signature from being replayed
against another body; the tolerance window bounds replays of the whole
delivery.
"""
from __future__ import annotations
import base64
import binascii
import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from .events import Event, parse_event
from .exceptions import (
    ConfigurationError,
    InvalidSignature,
    InvalidTimestamp,
    MissingCredentials,
)

SECRET_PREFIX = "whsec_"
SIGNATURE_VERSION = "v1"

# Svix header family first, Standard Webhooks names as fallback; never mixed
_HEADER_FAMILIES = ("svix", "webhook")


@dataclass(frozen=True)
class WebhookDelivery:
    """Raw inbound delivery, discarded after verification."""
    delivery_id: Optional[str]
    timestamp: Optional[str]
    signature: Optional[str]
    body: bytes

    @classmethod
    def from_headers(cls, headers: Mapping[str, str], body: bytes) -> "WebhookDelivery":
        """Extract delivery metadata from request headers (case-insensitive).

        All three values come from one header family: ``svix-*`` when any of
        them is present, ``webhook-*`` otherwise.
        """
        lowered = {str(k).lower(): (v or "").strip() for k, v in headers.items()}

        family = _HEADER_FAMILIES[-1]
        for prefix in _HEADER_FAMILIES:
            if any(lowered.get(f"{prefix}-{part}") for part in ("id", "timestamp", "signature")):
                family = prefix
                break

        def pick(part: str) -> Optional[str]:
            return lowered.get(f"{family}-{part}") or None

        return cls(
            delivery_id=pick("id"),
            timestamp=pick("timestamp"),
            signature=pick("signature"),
            body=body,
        )


def _decode_secret(secret: str) -> bytes:
    if not secret or not secret.strip():
        raise ConfigurationError("Webhook secret is not configured")
    raw = secret.strip()
    if raw.startswith(SECRET_PREFIX):
        raw = raw[len(SECRET_PREFIX):]
    try:
        key = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        raise ConfigurationError("Webhook secret is not valid base64 (expected 'whsec_<base64>')")
    if not key:
        raise ConfigurationError("Webhook secret decodes to an empty key")
    return key


def sign(key: bytes, delivery_id: str, timestamp: str, body: bytes) -> str:
    """Compute the base64 HMAC-SHA256 signature for a delivery."""
    signed_content = f"{delivery_id}.{timestamp}.".encode("utf-8") + body
    digest = hmac.new(key, signed_content, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


class WebhookVerifier:
    """Validates that a delivery originates from the identity provider.

    Args:
        secret: Endpoint signing secret (``whsec_<base64>``)
        tolerance: Maximum age/skew of the delivery timestamp in seconds;
            0 disables the replay window
        clock: Callable returning the current Unix time

    Raises:
        ConfigurationError: If the secret is missing or undecodable, or the
            tolerance is negative
    """

    def __init__(self, secret: str, tolerance: int = 300, clock: Callable[[], float] = time.time):
        if tolerance < 0:
            raise ConfigurationError("Webhook timestamp tolerance must not be negative")
        self._key = _decode_secret(secret)
        self.tolerance = tolerance
        self._clock = clock

    def verify_signature(self, delivery: WebhookDelivery) -> None:
        """Authenticate a delivery without interpreting its body.

        Raises:
            MissingCredentials: If id, timestamp or signature is absent
            InvalidTimestamp: If the timestamp is unparseable or stale
            InvalidSignature: If no signature entry matches
        """
        if not delivery.delivery_id or not delivery.timestamp or not delivery.signature:
            raise MissingCredentials("Missing webhook delivery headers (id, timestamp, signature)")

        try:
            sent_at = int(delivery.timestamp)
        except ValueError:
            raise InvalidTimestamp("Webhook timestamp is not a Unix timestamp")

        if self.tolerance:
            # Integer arithmetic: huge timestamps must not overflow a float
            skew = abs(int(self._clock()) - sent_at)
            if skew > self.tolerance:
                raise InvalidTimestamp(f"Webhook timestamp outside the {self.tolerance}s tolerance window")

        expected = sign(self._key, delivery.delivery_id, delivery.timestamp, delivery.body)
        for entry in delivery.signature.split():
            version, _, candidate = entry.partition(",")
            if version != SIGNATURE_VERSION or not candidate:
                continue
            if hmac.compare_digest(candidate.encode("ascii", "ignore"), expected.encode("ascii")):
                return

        raise InvalidSignature("Webhook signature does not match")

    def verify(self, delivery: WebhookDelivery) -> Event:
        """Authenticate a delivery and decode its now-trusted body."""
        self.verify_signature(delivery)
        return parse_event(delivery.body)
