"""Registration handler."""

from .base import BaseMessageHandler
from ..models import HelloEnvelope, MessageType


class HelloHandler(BaseMessageHandler):
    """Binds the connection to a client-chosen identity."""

    model = HelloEnvelope
    requires_registration = False

    async def handle(self, connection, envelope: HelloEnvelope) -> None:
        entry = await self.manager.bind_identity(
            connection, envelope.userId, envelope.name
        )
        await connection.send(
            self._build_envelope(
                MessageType.HELLO_ACK, ok=True, userId=entry.user_id
            )
        )
