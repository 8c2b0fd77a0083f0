"""Identifier helpers shared by the relay components."""

import re
import secrets
import string
import time
import uuid

# Never part of a valid identifier, so a joined pair cannot be ambiguous.
SESSION_SEPARATOR = "|"

IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9_.@:\-]{1,128}")

_GROUP_ALPHABET = string.ascii_uppercase + string.digits


def is_valid_identifier(value) -> bool:
    """Whether ``value`` is a well-formed client identifier."""
    return isinstance(value, str) and bool(IDENTIFIER_PATTERN.fullmatch(value))


def new_message_id() -> str:
    return uuid.uuid4().hex


def new_group_id() -> str:
    return "G-" + "".join(secrets.choice(_GROUP_ALPHABET) for _ in range(6))


def now_ms() -> int:
    """Wall clock in milliseconds."""
    return int(time.time() * 1000)
