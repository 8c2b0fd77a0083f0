"""Pairwise session negotiation: request, response and end.

Session lifecycle as seen by the relay::

    NONE -> REQUESTED -> ACCEPTED -> ENDED
                      -> REJECTED

``REQUESTED`` is never stored here. A ``response-chat`` is taken as evidence
of an earlier request; the relay does not check that one was made.
"""

from .base import BaseMessageHandler
from ..models import (
    EndSessionEnvelope,
    MessageType,
    RequestChatEnvelope,
    ResponseChatEnvelope,
)
from ..utils import is_valid_identifier


class _NegotiationHandler(BaseMessageHandler):
    """Shared destination checks for request-initiating envelopes."""

    async def _send_failed(self, connection, to_id: str, reason: str) -> None:
        self.logger.info(f"Request from {connection.user_id} to {to_id!r} failed: {reason}")
        await connection.send(
            self._build_envelope(MessageType.REQUEST_FAILED, toId=to_id, reason=reason)
        )

    async def _resolve_destination(self, connection, sender: str, to_id: str) -> bool:
        """Answer ``request-failed`` and return False if ``to_id`` is unusable."""
        if not is_valid_identifier(to_id):
            await self._send_failed(connection, to_id, "Invalid user id")
            return False
        if to_id == sender:
            await self._send_failed(connection, to_id, "Cannot chat with yourself")
            return False
        if not self.manager.is_online(to_id):
            await self._send_failed(connection, to_id, "User not online")
            return False
        return True


class RequestChatHandler(_NegotiationHandler):
    """Forwards a chat request to an online identity."""

    model = RequestChatEnvelope

    async def handle(self, connection, envelope: RequestChatEnvelope) -> None:
        sender = self._require_sender(connection, envelope.fromId)
        if not await self._resolve_destination(connection, sender, envelope.toId):
            return

        await self.manager.send_to_user(
            envelope.toId,
            self._build_envelope(
                MessageType.INCOMING_REQUEST,
                fromId=sender,
                fromName=self.manager.display_name_of(sender),
            ),
        )
        await connection.send(
            self._build_envelope(MessageType.REQUEST_SENT, toId=envelope.toId)
        )


class ResponseChatHandler(_NegotiationHandler):
    """Accepts or rejects a chat request.

    ``fromId`` is the responder, ``toId`` the original requester.
    """

    model = ResponseChatEnvelope

    async def handle(self, connection, envelope: ResponseChatEnvelope) -> None:
        responder = self._require_sender(connection, envelope.fromId)
        requester = envelope.toId

        if not envelope.accept:
            await self.manager.send_to_user(
                requester,
                self._build_envelope(
                    MessageType.REQUEST_REJECTED,
                    fromId=responder,
                    fromName=self.manager.display_name_of(responder),
                ),
            )
            return

        if not await self._resolve_destination(connection, responder, requester):
            return

        session = self.manager.sessions.open_pairwise(requester, responder)
        self.manager.total_sessions_started += 1

        for user_id in session.participants:
            peer_id = session.peer_of(user_id)
            await self.manager.send_to_user(
                user_id,
                self._build_envelope(
                    MessageType.CHAT_START,
                    sessionId=session.session_id,
                    peerId=peer_id,
                    peerName=self.manager.display_name_of(peer_id),
                    createdAt=session.created_at,
                ),
            )
        self.logger.success(f"Session started: {session.session_id}")


class EndSessionHandler(BaseMessageHandler):
    """Ends a session on behalf of one of its participants."""

    model = EndSessionEnvelope

    async def handle(self, connection, envelope: EndSessionEnvelope) -> None:
        sender = self._require_sender(connection)
        session = self._require_participant(envelope.sessionId, sender)
        await self.manager.end_session(session.session_id, reason="ended")
