"""Identity provider API exceptions."""


class IdentityProviderError(Exception):
    """Base exception for all identity provider operations."""
    pass


class IdentityProviderAPIError(IdentityProviderError):
    """HTTP error from the identity provider Backend API.
    
    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """
    
    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class UserNotFoundError(IdentityProviderAPIError):
    """Account lookup failed - the external identity does not exist."""
    pass
