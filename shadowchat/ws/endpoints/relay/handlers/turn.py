"""TURN credential handler."""

from .base import BaseMessageHandler
from ..models import BareEnvelope, MessageType
from shadowchat.utils.turn import TurnNotConfiguredError, issue_turn_credentials


class TurnHandler(BaseMessageHandler):
    """Hands a registered client a time-limited TURN credential."""

    model = BareEnvelope

    async def handle(self, connection, envelope: BareEnvelope) -> None:
        sender = self._require_sender(connection)
        settings = self.manager.settings
        try:
            credentials = issue_turn_credentials(
                sender,
                settings.turn_secret,
                settings.turn_urls,
                settings.turn_ttl_seconds,
            )
        except TurnNotConfiguredError as e:
            await connection.send(
                self._build_envelope(MessageType.TURN_FAILED, reason=str(e))
            )
            return

        await connection.send(
            self._build_envelope(MessageType.TURN_CREDENTIALS, **credentials.model_dump())
        )
