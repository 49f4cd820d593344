from typing import Optional


class MyntraError(Exception):
    """Base class for errors rendered back to the calling agent as text."""


class ValidationError(MyntraError):
    """A required tool argument is missing or malformed."""


class NotAuthenticated(MyntraError):
    """No usable session exists for the seller."""

    def __init__(self, message: str = "Not authenticated with Myntra. Please authenticate first using authenticate."):
        super().__init__(message)


class AuthError(MyntraError):
    """The Myntra API rejected the supplied credentials."""


class RefreshFailure(MyntraError):
    """The refresh token could not be exchanged; the session gets revoked."""


class ApiError(MyntraError):
    """A Myntra API call failed after authentication."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InternalError(MyntraError):
    """Unexpected failure; only the message crosses the tool boundary."""
