"""Audit logging utilities for applied sync events."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "sync-events.jsonl"


def _get_signing_key() -> bytes:
    """Get the audit signing key from environment (loaded lazily to support Docker secrets)."""
    key_file = os.environ.get("AUDIT_LOG_SIGNING_KEY_FILE")
    if key_file:
        path = Path(key_file)
        if path.exists():
            try:
                return path.read_text(encoding="utf-8").strip().encode("utf-8")
            except OSError:
                pass
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


EventType = Literal[
    "user_created", "user_updated", "user_deleted",
    "metadata_published", "metadata_publish_failed",
    "delivery_rejected",
]


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    # Canonical JSON representation for signing
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_sync_event(
    event_type: EventType,
    external_id: Optional[str],
    *,
    delivery_id: Optional[str] = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append a sync event to the audit trail with timestamp and signature.

    Args:
        event_type: Type of sync operation (user_created, user_deleted, etc.)
        external_id: Provider account affected by the operation
        delivery_id: Webhook delivery that triggered the operation
        details: Additional context (internal id, changed fields, errors)
        success: Whether the operation succeeded
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "external_id": external_id,
        "delivery_id": delivery_id,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    # Append to JSONL file (one JSON object per line)
    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")

    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_sync_event(
    event_type: EventType,
    external_id: Optional[str],
    *,
    delivery_id: Optional[str] = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log sync event with automatic error handling (never raises exceptions).

    Audit failures must not turn an applied mutation into a 500, or the
    provider would redeliver an event that already took effect.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_sync_event(
            event_type,
            external_id,
            delivery_id=delivery_id,
            details=details,
            success=success,
        )
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning(f"Failed to log {event_type} audit event for {external_id}: {e}")
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    total = 0
    valid = 0

    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
                stored_sig = event.pop("signature", "")
                if not stored_sig:
                    continue
                computed_sig = _sign_event(event)
                if hmac.compare_digest(stored_sig, computed_sig):
                    valid += 1
            except (json.JSONDecodeError, KeyError):
                continue

    return total, valid
