"""Ping/Heartbeat message handler."""

from .base import BaseMessageHandler
from ..models import BareEnvelope, MessageType
from ..utils import now_ms


class HeartbeatHandler(BaseMessageHandler):
    """Marks a connection alive on ``pong`` or ``heartbeat``.

    A client-initiated ``heartbeat`` is acknowledged; ``pong`` is the answer to
    the relay's own probe and gets no reply.
    """

    model = BareEnvelope
    requires_registration = False

    async def handle(self, connection, envelope: BareEnvelope) -> None:
        connection.is_alive = True
        if envelope.type == MessageType.HEARTBEAT.value:
            await connection.send(
                self._build_envelope(MessageType.HEARTBEAT_ACK, timestamp=now_ms())
            )
