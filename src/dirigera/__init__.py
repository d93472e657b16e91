"""
Client for the IKEA DIRIGERA smart-home hub.

This package provides:
- mDNS discovery of the hub on the local network
- PKCE device pairing and bearer token storage
- Device listing over the hub's HTTPS API

Base exception classes are defined here for consistent error handling
across the client.

Example:
    from src.dirigera import DirigeraError, HubTimeoutError
    from src.dirigera.client import DirigeraClient

    try:
        client = DirigeraClient.from_file('config.json')
        client.discover()
    except HubTimeoutError:
        logger.info("Hub not found yet, retrying")
"""


class DirigeraError(Exception):
    """
    Base exception for all hub client errors.

    All client-specific exceptions inherit from this class so callers
    can catch any hub error with a single except clause.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class HubTimeoutError(DirigeraError):
    """
    Raised when no hub answered the mDNS query in time.

    This is the only retryable client error.
    """

    def __init__(self, message: str = "timeout discovering hub", details: dict | None = None):
        super().__init__(message, details)


class DiscoveryError(DirigeraError):
    """
    Raised when discovery fails for a reason other than a timeout:
    unknown interface, socket failure, or a hub reply without an address.
    """

    pass


class AuthError(DirigeraError):
    """
    Raised when the hub returns an error body during pairing.

    The message is the hub's error code followed by its message.
    """

    pass


class HubRequestError(DirigeraError):
    """
    Raised when an HTTPS request to the hub fails.

    This includes transport errors, non-2xx responses and bodies
    that are not valid JSON.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


__all__ = [
    'DirigeraError',
    'HubTimeoutError',
    'DiscoveryError',
    'AuthError',
    'HubRequestError',
]
