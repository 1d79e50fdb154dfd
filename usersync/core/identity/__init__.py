"""Identity provider Backend API client.

Architecture:
- client.py: HTTP client with bearer authentication and error mapping
- exceptions.py: Typed exceptions for error handling

Usage:
    from usersync.core.identity import IdentityProviderClient

    client = IdentityProviderClient("https://api.clerk.com/v1", secret_key="sk_live_...")
    client.update_user_metadata("user_123", public_metadata={"userId": "..."})
"""
from .client import IdentityProviderClient, REQUEST_TIMEOUT
from .exceptions import (
    IdentityProviderError,
    IdentityProviderAPIError,
    UserNotFoundError,
)

__all__ = [
    "IdentityProviderClient",
    "REQUEST_TIMEOUT",
    "IdentityProviderError",
    "IdentityProviderAPIError",
    "UserNotFoundError",
]
