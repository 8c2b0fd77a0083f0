"""Custom exceptions for the relay."""

from typing import Optional


class RelayError(Exception):
    """Base exception for relay errors."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ValidationError(RelayError):
    """Raised when an inbound envelope is malformed."""

    pass


class NotRegisteredError(RelayError):
    """Raised when a connection acts before completing ``hello``."""

    pass


class SessionNotFoundError(RelayError):
    """Raised when a session does not exist or the sender is not in it."""

    pass


class GroupNotFoundError(RelayError):
    """Raised when a group does not exist."""

    pass


class PermissionDeniedError(RelayError):
    """Raised when a non-owner attempts an owner-only group action."""

    pass


class RateLimitExceededError(RelayError):
    """Raised when an identity exceeds its admission window."""

    pass
