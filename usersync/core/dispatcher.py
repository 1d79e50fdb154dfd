"""Webhook dispatcher - verifies, parses and routes one delivery.

Per-request states:

    Received -> Verified -> Parsed -> Dispatched -> Acknowledged | Rejected

Verification and parse failures reject with 400 before any store access.
Unhandled event kinds are acknowledged with 200 and an empty body, since
anything other than 2xx makes the provider redeliver. Store failures reject
with 500 so the provider's redelivery acts as the retry.

Metadata publishing after a create is best-effort: its outcome is reported
under ``metadata`` in the response and in the audit trail, but never hides a
record that was already persisted.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from . import audit
from .events import Event, EventKind
from .exceptions import MalformedEnvelope, NotFound, PublishError, StoreError, VerificationError
from .publisher import MetadataPublisher
from .sync_service import UserSyncService
from .verification import WebhookDelivery, WebhookVerifier

logger = logging.getLogger(__name__)

_ERROR_MESSAGES = {
    EventKind.CREATED: "Error creating user",
    EventKind.UPDATED: "Error updating user",
    EventKind.DELETED: "Error deleting user",
}

_AUDIT_TYPES = {
    EventKind.CREATED: "user_created",
    EventKind.UPDATED: "user_updated",
    EventKind.DELETED: "user_deleted",
}


@dataclass(frozen=True)
class DispatchResult:
    """Transport-level outcome; body None means an empty response."""
    status_code: int
    body: Optional[dict] = None


class WebhookDispatcher:
    """Entry point of the sync pipeline.

    Args:
        verifier: Delivery authenticator
        service: User store operations
        publisher: Metadata write-back (None disables publishing)
    """

    def __init__(
        self,
        verifier: WebhookVerifier,
        service: UserSyncService,
        publisher: Optional[MetadataPublisher] = None,
    ):
        self.verifier = verifier
        self.service = service
        self.publisher = publisher

    def handle(self, headers: Mapping[str, str], body: bytes) -> DispatchResult:
        """Process one delivery and map the outcome to a response."""
        delivery = WebhookDelivery.from_headers(headers, body)

        try:
            event = self.verifier.verify(delivery)
        except (VerificationError, MalformedEnvelope) as exc:
            logger.warning(f"Rejected delivery id={delivery.delivery_id}: {exc.message}")
            audit.safe_log_sync_event(
                "delivery_rejected",
                None,
                delivery_id=delivery.delivery_id,
                details={"reason": type(exc).__name__},
                success=False,
            )
            return DispatchResult(exc.status, exc.to_dict())

        if event.kind is EventKind.UNHANDLED:
            logger.info(
                f"Webhook with an ID of {event.external_id} and type of {event.type} "
                f"(delivery {delivery.delivery_id}) not handled"
            )
            return DispatchResult(200, None)

        try:
            return self._dispatch(event, delivery.delivery_id)
        except NotFound as exc:
            logger.warning(f"{event.type} delivery id={delivery.delivery_id}: {exc.message}")
            self._audit_failure(event, delivery.delivery_id, exc)
            return DispatchResult(exc.status, exc.to_dict())
        except StoreError as exc:
            logger.error(f"{_ERROR_MESSAGES[event.kind]} (external_id={event.external_id}): {exc.message}")
            self._audit_failure(event, delivery.delivery_id, exc)
            return DispatchResult(exc.status, {"message": _ERROR_MESSAGES[event.kind]})

    def _dispatch(self, event: Event, delivery_id: Optional[str]) -> DispatchResult:
        payload = event.payload
        external_id = payload.external_id

        if event.kind is EventKind.CREATED:
            record, created = self.service.create(payload)
            audit.safe_log_sync_event(
                "user_created",
                external_id,
                delivery_id=delivery_id,
                details={"user_id": record.id, "duplicate": not created},
            )
            metadata = self._publish(record.id, external_id, delivery_id)
            return DispatchResult(200, {"message": "OK", "user": record.to_dict(), "metadata": metadata})

        if event.kind is EventKind.UPDATED:
            record = self.service.update(external_id, payload)
            audit.safe_log_sync_event(
                "user_updated",
                external_id,
                delivery_id=delivery_id,
                details={"user_id": record.id, "fields": sorted(payload.provided)},
            )
            return DispatchResult(200, {"message": "OK", "user": record.to_dict()})

        record = self.service.delete(external_id)
        audit.safe_log_sync_event(
            "user_deleted",
            external_id,
            delivery_id=delivery_id,
            details={"user_id": record.id if record else None, "noop": record is None},
        )
        return DispatchResult(200, {"message": "OK", "user": record.to_dict() if record else {}})

    def _publish(self, internal_id: str, external_id: str, delivery_id: Optional[str]) -> dict:
        """Best-effort write-back; the failure channel is the returned status."""
        if self.publisher is None:
            return {"published": False, "skipped": True}

        try:
            self.publisher.publish(internal_id, external_id)
        except PublishError as exc:
            logger.error(f"Metadata publish failed for user id={internal_id}: {exc.message}")
            audit.safe_log_sync_event(
                "metadata_publish_failed",
                external_id,
                delivery_id=delivery_id,
                details={"user_id": internal_id, "error": exc.message},
                success=False,
            )
            return {"published": False, "error": exc.message}

        audit.safe_log_sync_event(
            "metadata_published",
            external_id,
            delivery_id=delivery_id,
            details={"user_id": internal_id},
        )
        return {"published": True}

    def _audit_failure(self, event: Event, delivery_id: Optional[str], exc: Exception) -> None:
        audit.safe_log_sync_event(
            _AUDIT_TYPES[event.kind],
            event.external_id,
            delivery_id=delivery_id,
            details={"error": type(exc).__name__},
            success=False,
        )
