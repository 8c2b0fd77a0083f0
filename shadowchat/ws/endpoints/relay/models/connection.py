"""Connection handle and connection statistics models."""

import asyncio
import json
import uuid
from typing import Any, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel
from starlette.websockets import WebSocketState

from shadowchat.utils.log import get_logger

logger = get_logger(__name__)


def _frame_text(message: Dict[str, Any]) -> str:
    """Text of a received ASGI message.

    Frames that are not valid UTF-8 come back as ``""``, which the relay's
    JSON check then drops like any other malformed frame.
    """
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(
            code=message.get("code", status.WS_1000_NORMAL_CLOSURE),
            reason=message.get("reason"),
        )
    text = message.get("text")
    if text is not None:
        return text
    data = message.get("bytes")
    if data is None:
        return ""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("Dropped binary frame that is not UTF-8")
        return ""


class Connection:
    """A live client socket as seen by the relay core.

    ``user_id`` stays ``None`` until the client completes ``hello``.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.conn_id = uuid.uuid4().hex
        self.user_id: Optional[str] = None
        self.is_alive = True
        self._terminated = asyncio.Event()

    def __repr__(self) -> str:
        return f"<Connection {self.conn_id[:8]} user={self.user_id}>"

    @property
    def terminated(self) -> bool:
        return self._terminated.is_set()

    @property
    def rate_key(self) -> str:
        """Rate-limit bucket key: the identity once registered, else the socket."""
        return self.user_id or f"conn:{self.conn_id}"

    async def send(self, payload: Dict[str, Any]) -> bool:
        """Send a JSON envelope; never raises for a vanished peer."""
        if self.terminated:
            return False
        if self.websocket.application_state != WebSocketState.CONNECTED:
            return False
        try:
            await self.websocket.send_text(json.dumps(payload))
            return True
        except Exception as e:
            logger.warning(f"Send to {self!r} failed: {e}")
            return False

    async def receive(self) -> Optional[str]:
        """Wait for the next frame's text, or ``None`` once terminated.

        Binary frames are decoded as UTF-8. ``WebSocketDisconnect`` from the
        socket propagates to the caller.
        """
        if self.terminated:
            return None
        receiver = asyncio.ensure_future(self.websocket.receive())
        stopper = asyncio.ensure_future(self._terminated.wait())
        try:
            done, _ = await asyncio.wait(
                {receiver, stopper}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (receiver, stopper):
                if not task.done():
                    task.cancel()
        if receiver in done:
            return _frame_text(receiver.result())
        return None

    async def terminate(self, code: int = status.WS_1008_POLICY_VIOLATION) -> None:
        """Forcibly close the socket; safe to call more than once."""
        if self.terminated:
            return
        self._terminated.set()
        if self.websocket.application_state == WebSocketState.CONNECTED:
            try:
                await self.websocket.close(code=code)
            except Exception as e:
                logger.debug(f"Close of {self!r} failed: {e}")


class RelayMetrics(BaseModel):
    """Counters exposed for external scraping."""

    activeConnections: int
    totalConnections: int
    totalSessionsStarted: int
    registeredIdentities: int
    activeSessions: int
    activeGroups: int
    pendingSelfDestructs: int
