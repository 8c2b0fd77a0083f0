"""Models for relay WebSocket communication."""

from .message import (
    DEFAULT_DISPLAY_NAME,
    MessageType,
    InboundEnvelope,
    HelloEnvelope,
    RequestChatEnvelope,
    ResponseChatEnvelope,
    ChatMessageEnvelope,
    EditMessageEnvelope,
    DeleteMessageEnvelope,
    EndSessionEnvelope,
    TypingEnvelope,
    SignalEnvelope,
    KeyExchangeEnvelope,
    CreateGroupEnvelope,
    GroupEnvelope,
    GroupDecisionEnvelope,
    GroupMessageEnvelope,
    BareEnvelope,
)
from .connection import Connection, RelayMetrics
from .state import IdentityEntry, Session, Group

__all__ = [
    "DEFAULT_DISPLAY_NAME",
    "MessageType",
    "InboundEnvelope",
    "HelloEnvelope",
    "RequestChatEnvelope",
    "ResponseChatEnvelope",
    "ChatMessageEnvelope",
    "EditMessageEnvelope",
    "DeleteMessageEnvelope",
    "EndSessionEnvelope",
    "TypingEnvelope",
    "SignalEnvelope",
    "KeyExchangeEnvelope",
    "CreateGroupEnvelope",
    "GroupEnvelope",
    "GroupDecisionEnvelope",
    "GroupMessageEnvelope",
    "BareEnvelope",
    "Connection",
    "RelayMetrics",
    "IdentityEntry",
    "Session",
    "Group",
]
