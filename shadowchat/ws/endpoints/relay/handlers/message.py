"""In-session traffic: messages, edits, deletes and typing indicators."""

from .base import BaseMessageHandler
from ..manager import ConnectionManager, SelfDestructScheduler
from ..models import (
    ChatMessageEnvelope,
    DeleteMessageEnvelope,
    EditMessageEnvelope,
    MessageType,
    TypingEnvelope,
)
from ..utils import new_message_id, now_ms


class ChatMessageHandler(BaseMessageHandler):
    """Relays a message to both participants with a canonical id and timestamp.

    The sender gets its own copy back so it can replace its optimistic one;
    a client-supplied ``id`` is echoed as ``clientId`` for that purpose.
    """

    model = ChatMessageEnvelope

    def __init__(
        self, connection_manager: ConnectionManager, scheduler: SelfDestructScheduler
    ):
        super().__init__(connection_manager)
        self.scheduler = scheduler

    async def handle(self, connection, envelope: ChatMessageEnvelope) -> None:
        sender = self._require_sender(connection, envelope.fromId)
        session = self._require_participant(envelope.sessionId, sender)

        payload = self._build_envelope(
            MessageType.MESSAGE,
            id=new_message_id(),
            sessionId=session.session_id,
            **{"from": sender},
            fromName=self.manager.display_name_of(sender),
            text=envelope.text,
            timestamp=now_ms(),
        )
        if envelope.encrypted is not None:
            payload["encrypted"] = envelope.encrypted
        if envelope.id is not None:
            payload["clientId"] = envelope.id

        delay = None
        if envelope.selfDestruct is not None and envelope.selfDestruct > 0:
            delay = self.scheduler.clamp(envelope.selfDestruct)
            payload["selfDestruct"] = delay

        await self.manager.broadcast_to_session(session.session_id, payload)

        if delay is not None:
            self.scheduler.schedule_delete(session.session_id, payload["id"], delay)


class EditMessageHandler(BaseMessageHandler):
    """Fans out an edit. Authorship of the original message is not checked."""

    model = EditMessageEnvelope

    async def handle(self, connection, envelope: EditMessageEnvelope) -> None:
        sender = self._require_sender(connection, envelope.fromId)
        session = self._require_participant(envelope.sessionId, sender)

        await self.manager.broadcast_to_session(
            session.session_id,
            self._build_envelope(
                MessageType.EDIT_MESSAGE,
                sessionId=session.session_id,
                id=envelope.messageId,
                fromId=sender,
                newText=envelope.newText,
            ),
        )


class DeleteMessageHandler(BaseMessageHandler):
    """Fans out a delete. Authorship of the original message is not checked."""

    model = DeleteMessageEnvelope

    async def handle(self, connection, envelope: DeleteMessageEnvelope) -> None:
        sender = self._require_sender(connection)
        session = self._require_participant(envelope.sessionId, sender)

        await self.manager.broadcast_to_session(
            session.session_id,
            self._build_envelope(
                MessageType.DELETE_MESSAGE,
                sessionId=session.session_id,
                id=envelope.id,
            ),
        )


class TypingHandler(BaseMessageHandler):
    """Forwards a typing indicator to the peer of a live session."""

    model = TypingEnvelope

    async def handle(self, connection, envelope: TypingEnvelope) -> None:
        sender = self._require_sender(connection, envelope.fromId)
        session = self._require_participant(envelope.sessionId, sender)

        await self.manager.send_to_user(
            session.peer_of(sender),
            self._build_envelope(
                MessageType.TYPING,
                sessionId=session.session_id,
                fromId=sender,
                isTyping=envelope.isTyping,
            ),
        )
