"""Low-level HTTP client for the identity provider Backend API.

Handles authentication and HTTP operations.
"""
from __future__ import annotations
from typing import Optional, Dict, Any

import requests

from .exceptions import IdentityProviderAPIError, UserNotFoundError

REQUEST_TIMEOUT = 5


class IdentityProviderClient:
    """HTTP client for the identity provider Backend API.

    Features:
    - Bearer authentication with the instance secret key
    - Bounded request timeout on every call
    - Centralized error handling

    Usage:
        client = IdentityProviderClient("https://api.clerk.com/v1", secret_key="sk_test_...")
        user = client.get_user("user_2abc")
    """

    def __init__(self, base_url: str, secret_key: str, timeout: float = REQUEST_TIMEOUT):
        """Initialize identity provider client.

        Args:
            base_url: Backend API base URL (e.g., https://api.clerk.com/v1)
            secret_key: Instance secret key used as bearer token
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self._secret_key = secret_key
        self.timeout = timeout

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = dict(extra or {})
        headers["Authorization"] = f"Bearer {self._secret_key}"
        return headers

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request.

        Args:
            path: API endpoint path (e.g., "/users/user_123")
            params: Query parameters
            **kwargs: Additional arguments for requests.get

        Returns:
            Response object

        Raises:
            IdentityProviderAPIError: On HTTP error
            requests.RequestException: On transport failure
        """
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.get(url, params=params, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def patch(self, path: str, json: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute PATCH request.

        Args:
            path: API endpoint path
            json: JSON payload
            **kwargs: Additional arguments for requests.patch

        Returns:
            Response object

        Raises:
            IdentityProviderAPIError: On HTTP error
            requests.RequestException: On transport failure
        """
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.patch(url, json=json, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def get_user(self, external_id: str) -> Dict[str, Any]:
        """Return the provider's user object for an external identity."""
        return self.get(f"/users/{external_id}").json()

    def update_user_metadata(
        self,
        external_id: str,
        public_metadata: Optional[Dict[str, Any]] = None,
        private_metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Merge metadata into the provider's user object.

        The provider deep-merges the given keys, so repeated calls with the
        same values are idempotent.

        Args:
            external_id: Provider user id
            public_metadata: Keys to merge into public metadata
            private_metadata: Keys to merge into private metadata

        Returns:
            Updated user object
        """
        payload: Dict[str, Any] = {}
        if public_metadata is not None:
            payload["public_metadata"] = public_metadata
        if private_metadata is not None:
            payload["private_metadata"] = private_metadata
        return self.patch(f"/users/{external_id}/metadata", json=payload).json()

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Args:
            resp: Response object to check

        Raises:
            UserNotFoundError: If the provider answers 404
            IdentityProviderAPIError: If response status indicates error
        """
        if resp.status_code == 404:
            raise UserNotFoundError(resp.status_code, resp.text, resp.url)
        if resp.status_code >= 400:
            raise IdentityProviderAPIError(resp.status_code, resp.text, resp.url)
