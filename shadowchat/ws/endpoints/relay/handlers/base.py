"""Base message handler class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

from pydantic import ValidationError as PydanticValidationError

from ..manager import ConnectionManager
from ..models import BareEnvelope, InboundEnvelope, MessageType, Session
from ..utils import NotRegisteredError, SessionNotFoundError, ValidationError
from shadowchat.utils.log import get_logger


class BaseMessageHandler(ABC):
    """Base class for envelope handlers.

    ``model`` validates the raw envelope; ``requires_registration`` gates the
    handler behind a completed ``hello``.
    """

    model: Type[InboundEnvelope] = BareEnvelope
    requires_registration: bool = True

    def __init__(self, connection_manager: ConnectionManager):
        self.manager = connection_manager
        self.logger = get_logger(self.__class__.__name__)

    def parse(self, message: Dict[str, Any]) -> InboundEnvelope:
        try:
            return self.model.model_validate(message)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Malformed '{message.get('type')}' envelope ({e.error_count()} error(s))"
            )

    @abstractmethod
    async def handle(self, connection, envelope: InboundEnvelope) -> None:
        """Handle the envelope."""
        pass

    def _require_sender(self, connection, from_id: Optional[str] = None) -> str:
        """The connection's bound identity; a differing ``fromId`` is malformed."""
        if not self.manager.owns_identity(connection):
            raise NotRegisteredError("Sender has no identity bound to this connection")
        if from_id is not None and from_id != connection.user_id:
            raise ValidationError(
                f"fromId {from_id!r} does not match registered {connection.user_id!r}"
            )
        return connection.user_id

    def _require_participant(self, session_id: str, user_id: str) -> Session:
        session = self.manager.sessions.get_session(session_id)
        if session is None or not session.includes(user_id):
            raise SessionNotFoundError(
                f"{user_id} is not in session {session_id}"
            )
        return session

    def _build_envelope(self, msg_type: MessageType, **fields: Any) -> Dict[str, Any]:
        """Create an outbound envelope."""
        return {"type": msg_type.value, **fields}
