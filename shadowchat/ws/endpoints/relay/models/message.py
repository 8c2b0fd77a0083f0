"""Envelope models for WebSocket communication."""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.identifiers import is_valid_identifier

DEFAULT_DISPLAY_NAME = "User"
MAX_DISPLAY_NAME_LENGTH = 64


class MessageType(str, Enum):
    """Envelope type enumeration."""

    # Registration
    HELLO = "hello"
    HELLO_ACK = "hello-ack"

    # Pairwise session negotiation
    REQUEST_CHAT = "request-chat"
    REQUEST_SENT = "request-sent"
    REQUEST_FAILED = "request-failed"
    INCOMING_REQUEST = "incoming-request"
    RESPONSE_CHAT = "response-chat"
    REQUEST_REJECTED = "request-rejected"
    CHAT_START = "chat-start"
    END_SESSION = "end-session"
    SESSION_ENDED = "session-ended"

    # In-session traffic
    MESSAGE = "message"
    EDIT_MESSAGE = "edit-message"
    DELETE_MESSAGE = "delete-message"
    TYPING = "typing"

    # Opaque passthrough
    SIGNAL = "signal"
    KEY_EXCHANGE = "key-exchange"

    # Groups
    CREATE_GROUP = "create-group"
    GROUP_CREATED = "group-created"
    JOIN_GROUP = "join-group"
    GROUP_JOINED = "group-joined"
    GROUP_USER_JOINED = "group-user-joined"
    GROUP_JOIN_REQUEST = "group-join-request"
    GROUP_JOIN_PENDING = "group-join-pending"
    APPROVE_JOIN = "approve-join"
    REJECT_JOIN = "reject-join"
    GROUP_JOIN_REJECTED = "group-join-rejected"
    LEAVE_GROUP = "leave-group"
    GROUP_USER_LEFT = "group-user-left"
    GROUP_MESSAGE = "group-message"
    GROUP_FAILED = "group-failed"

    # Liveness
    PING = "ping"
    PONG = "pong"
    HEARTBEAT = "heartbeat"
    HEARTBEAT_ACK = "heartbeat-ack"

    # TURN credentials
    TURN_REQUEST = "turn-request"
    TURN_CREDENTIALS = "turn-credentials"
    TURN_FAILED = "turn-failed"


MessageId = Union[str, int]


class InboundEnvelope(BaseModel):
    """Base model for every envelope a client sends."""

    model_config = ConfigDict(extra="ignore")

    type: str


class HelloEnvelope(InboundEnvelope):
    userId: str
    name: Optional[str] = None

    @field_validator("userId")
    @classmethod
    def _check_user_id(cls, value: str) -> str:
        if not is_valid_identifier(value):
            raise ValueError("malformed userId")
        return value

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()[:MAX_DISPLAY_NAME_LENGTH]
        return value or None


class RequestChatEnvelope(InboundEnvelope):
    fromId: str
    # Format is checked by the handler so a bad id can be answered.
    toId: str


class ResponseChatEnvelope(InboundEnvelope):
    fromId: str
    toId: str
    accept: bool


class ChatMessageEnvelope(InboundEnvelope):
    sessionId: str
    fromId: str
    text: str
    selfDestruct: Optional[float] = None
    encrypted: Optional[bool] = None
    id: Optional[MessageId] = None


class EditMessageEnvelope(InboundEnvelope):
    sessionId: str
    messageId: MessageId
    newText: str
    fromId: Optional[str] = None


class DeleteMessageEnvelope(InboundEnvelope):
    sessionId: str
    id: MessageId


class EndSessionEnvelope(InboundEnvelope):
    sessionId: str


class TypingEnvelope(InboundEnvelope):
    sessionId: str
    fromId: str
    isTyping: bool


class SignalEnvelope(InboundEnvelope):
    toId: str
    signalData: Any


class KeyExchangeEnvelope(InboundEnvelope):
    toId: str
    keyData: Any


class CreateGroupEnvelope(InboundEnvelope):
    fromId: str
    groupName: Optional[str] = None

    @field_validator("groupName", mode="before")
    @classmethod
    def _clean_group_name(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()[:MAX_DISPLAY_NAME_LENGTH]
        return value or None


class GroupEnvelope(InboundEnvelope):
    """``join-group`` and ``leave-group``."""

    fromId: str
    groupId: str


class GroupDecisionEnvelope(InboundEnvelope):
    """``approve-join`` and ``reject-join``, sent by the owner."""

    fromId: str
    groupId: str
    userId: str


class GroupMessageEnvelope(InboundEnvelope):
    fromId: str
    groupId: str
    text: str
    id: Optional[MessageId] = None


class BareEnvelope(InboundEnvelope):
    """Envelopes that carry nothing but their type."""

    timestamp: Optional[float] = Field(None, description="Client send time")
