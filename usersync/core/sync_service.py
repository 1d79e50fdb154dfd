"""
User Sync Service - idempotent create/update/delete keyed by external identity.

The identity provider delivers at least once and in no guaranteed order, so
every operation here is safe to repeat:

    create  duplicate delivery   -> existing record returned unchanged
    update  unknown identity     -> NotFound (a partial payload never originates a record)
    delete  unknown identity     -> successful no-op

Store failures propagate as StoreError; redelivery by the provider is the
only retry mechanism.
"""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from .events import ACCOUNT_FIELDS, AccountPayload
from .exceptions import NotFound
from .models import UserRecord
from .store import UserStore

logger = logging.getLogger(__name__)

DEFAULT_EMAIL = "no-email@example.com"
DEFAULT_USERNAME = "Anonymous"
DEFAULT_NAME = "Unknown"
DEFAULT_PHOTO = ""

# Source field -> (column, default)
_FIELD_MAP = {
    "username": ("username", DEFAULT_USERNAME),
    "first_name": ("first_name", DEFAULT_NAME),
    "last_name": ("last_name", DEFAULT_NAME),
    "image_url": ("photo", DEFAULT_PHOTO),
}


def _or_default(value: Optional[str], default: str) -> str:
    if value is None:
        return default
    value = value.strip()
    return value or default


def record_values(payload: AccountPayload, fields: Optional[Iterable[str]] = None) -> dict:
    """Derive defaulted column values from an account payload.

    Args:
        payload: Parsed account payload
        fields: Source fields to include (default: all account fields)

    Returns:
        Dict of column name -> non-null value
    """
    wanted = set(ACCOUNT_FIELDS if fields is None else fields)
    values: dict[str, str] = {}

    if "email_addresses" in wanted:
        values["email"] = _or_default(payload.primary_email, DEFAULT_EMAIL)

    for source, (column, default) in _FIELD_MAP.items():
        if source in wanted:
            values[column] = _or_default(getattr(payload, source), default)

    return values


class UserSyncService:
    """Applies account lifecycle events to the user store."""

    def __init__(self, store: UserStore):
        self.store = store

    def create(self, payload: AccountPayload) -> tuple[UserRecord, bool]:
        """Insert a defaulted record for the account.

        Returns:
            Tuple of (record, created); created is False for duplicate deliveries

        Raises:
            StoreError: If the store is unavailable
        """
        record, created = self.store.insert(payload.external_id, record_values(payload))
        if created:
            logger.info(f"Created user id={record.id} external_id={payload.external_id}")
        else:
            logger.info(f"Duplicate create for external_id={payload.external_id}; keeping id={record.id}")
        return record, created

    def update(self, external_id: str, payload: AccountPayload) -> UserRecord:
        """Overwrite the fields carried by the payload.

        Raises:
            NotFound: If no record exists for the external identity
            StoreError: If the store is unavailable
        """
        values = record_values(payload, payload.provided)
        record = self.store.update(external_id, values)
        if record is None:
            raise NotFound(f"User with external id '{external_id}' not found")
        logger.info(f"Updated user id={record.id} fields={sorted(values)}")
        return record

    def delete(self, external_id: str) -> Optional[UserRecord]:
        """Remove the record if present; absent records are a no-op."""
        record = self.store.delete(external_id)
        if record is None:
            logger.info(f"Delete for unknown external_id={external_id}; nothing to do")
        else:
            logger.info(f"Deleted user id={record.id} external_id={external_id}")
        return record
