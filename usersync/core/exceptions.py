"""Typed exceptions for the webhook sync pipeline.

Every exception carries the HTTP status the dispatcher answers with, so the
transport layer never has to guess how an outcome maps to a response.
"""
from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base exception for all sync pipeline failures.

    Attributes:
        status: HTTP status code reported to the identity provider
        message: Human-readable error description
    """

    status = 500

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        if status is not None:
            self.status = status
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to JSON error response format."""
        return {"error": type(self).__name__, "message": self.message}


class ConfigurationError(SyncError):
    """Deployment fault (e.g. missing webhook secret); the app must not start."""
    status = 500


class VerificationError(SyncError):
    """Inbound delivery could not be authenticated."""
    status = 400


class MissingCredentials(VerificationError):
    """Delivery id, timestamp or signature header is absent."""
    pass


class InvalidTimestamp(VerificationError):
    """Delivery timestamp is unparseable or outside the tolerance window."""
    pass


class InvalidSignature(VerificationError):
    """No signature entry matches the expected HMAC."""
    pass


class MalformedEnvelope(SyncError):
    """Verified body is not a recognisable event envelope."""
    status = 400


class NotFound(SyncError):
    """No user record matches the external identity."""
    status = 404


class StoreError(SyncError):
    """User store is unavailable or rejected the operation.

    Attributes:
        operation: Store operation that failed (insert, update, query, ...)
    """

    status = 500

    def __init__(self, message: str, operation: str = "unknown"):
        self.operation = operation
        super().__init__(message)


class PublishError(SyncError):
    """Metadata write-back to the identity provider failed."""
    status = 502
