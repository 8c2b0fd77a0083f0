"""Utility modules for the relay."""

from .exceptions import (
    RelayError,
    ValidationError,
    NotRegisteredError,
    SessionNotFoundError,
    GroupNotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
)
from .identifiers import (
    SESSION_SEPARATOR,
    is_valid_identifier,
    new_group_id,
    new_message_id,
    now_ms,
)

__all__ = [
    "RelayError",
    "ValidationError",
    "NotRegisteredError",
    "SessionNotFoundError",
    "GroupNotFoundError",
    "PermissionDeniedError",
    "RateLimitExceededError",
    "SESSION_SEPARATOR",
    "is_valid_identifier",
    "new_group_id",
    "new_message_id",
    "now_ms",
]
