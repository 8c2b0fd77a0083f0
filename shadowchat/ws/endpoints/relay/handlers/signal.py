"""Opaque passthrough for WebRTC signalling and key exchange."""

from .base import BaseMessageHandler
from ..models import KeyExchangeEnvelope, MessageType, SignalEnvelope


class PassthroughHandler(BaseMessageHandler):
    """Forwards an opaque payload to one named identity.

    The payload field is never inspected. Unknown destinations are dropped.
    """

    message_type: MessageType
    payload_field: str

    async def handle(self, connection, envelope) -> None:
        sender = self._require_sender(connection)
        delivered = await self.manager.send_to_user(
            envelope.toId,
            self._build_envelope(
                self.message_type,
                fromId=sender,
                **{self.payload_field: getattr(envelope, self.payload_field)},
            ),
        )
        if not delivered:
            self.logger.debug(
                f"{self.message_type.value} from {sender} to {envelope.toId!r} dropped"
            )


class SignalHandler(PassthroughHandler):
    model = SignalEnvelope
    message_type = MessageType.SIGNAL
    payload_field = "signalData"


class KeyExchangeHandler(PassthroughHandler):
    model = KeyExchangeEnvelope
    message_type = MessageType.KEY_EXCHANGE
    payload_field = "keyData"
