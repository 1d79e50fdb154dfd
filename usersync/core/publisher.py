"""Metadata write-back: records the internal user id on the provider account."""
from __future__ import annotations
import logging

import requests

from .exceptions import PublishError
from .identity import IdentityProviderClient, IdentityProviderError

logger = logging.getLogger(__name__)


class MetadataPublisher:
    """Writes the internal identifier into the provider's public metadata.

    Args:
        client: Identity provider API client
        metadata_key: Public metadata key holding the internal id
    """

    def __init__(self, client: IdentityProviderClient, metadata_key: str = "userId"):
        self.client = client
        self.metadata_key = metadata_key

    def publish(self, internal_id: str, external_id: str) -> None:
        """Write ``{metadata_key: internal_id}`` to the account's public metadata.

        Raises:
            PublishError: On any API or transport failure
        """
        try:
            self.client.update_user_metadata(
                external_id,
                public_metadata={self.metadata_key: internal_id},
            )
        except (IdentityProviderError, requests.RequestException) as exc:
            raise PublishError(f"Failed to publish metadata for '{external_id}': {exc}")
        logger.info(f"Published {self.metadata_key}={internal_id} to external_id={external_id}")
