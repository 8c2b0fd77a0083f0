"""Envelope handlers for the relay."""

from .base import BaseMessageHandler
from .hello import HelloHandler
from .chat import RequestChatHandler, ResponseChatHandler, EndSessionHandler
from .message import (
    ChatMessageHandler,
    EditMessageHandler,
    DeleteMessageHandler,
    TypingHandler,
)
from .signal import SignalHandler, KeyExchangeHandler
from .group import (
    CreateGroupHandler,
    JoinGroupHandler,
    GroupDecisionHandler,
    LeaveGroupHandler,
    GroupMessageHandler,
)
from .heartbeat import HeartbeatHandler
from .turn import TurnHandler

__all__ = [
    "BaseMessageHandler",
    "HelloHandler",
    "RequestChatHandler",
    "ResponseChatHandler",
    "EndSessionHandler",
    "ChatMessageHandler",
    "EditMessageHandler",
    "DeleteMessageHandler",
    "TypingHandler",
    "SignalHandler",
    "KeyExchangeHandler",
    "CreateGroupHandler",
    "JoinGroupHandler",
    "GroupDecisionHandler",
    "LeaveGroupHandler",
    "GroupMessageHandler",
    "HeartbeatHandler",
    "TurnHandler",
]
