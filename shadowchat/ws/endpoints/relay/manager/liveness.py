"""Heartbeat sweep over every open connection."""

import asyncio

from fastapi import status

from ..models import MessageType
from ..utils import now_ms
from shadowchat.utils.log import get_logger


class LivenessMonitor:
    """Terminates connections that did not answer the previous probe.

    A connection is marked unanswered and probed with ``ping`` on every sweep;
    any ``pong`` or ``heartbeat`` from the client marks it alive again. A
    terminated connection's receive loop exits and runs the normal teardown.
    """

    def __init__(self, manager, interval_ms: int = 30_000):
        self.manager = manager
        self.interval_ms = interval_ms
        self.logger = get_logger(__name__)

    async def sweep(self) -> int:
        """Run one heartbeat round. Returns the number of terminated connections."""
        terminated = 0
        for connection in list(self.manager.connections.values()):
            if not connection.is_alive:
                self.logger.failure(
                    f"No heartbeat from {connection!r}, terminating"
                )
                await connection.terminate(code=status.WS_1001_GOING_AWAY)
                terminated += 1
                continue

            connection.is_alive = False
            await connection.send(
                {"type": MessageType.PING.value, "timestamp": now_ms()}
            )
        return terminated

    async def run(self) -> None:
        self.logger.system(f"Liveness monitor every {self.interval_ms} ms")
        while True:
            await asyncio.sleep(self.interval_ms / 1000)
            try:
                await self.sweep()
            except Exception:
                self.logger.exception("Liveness sweep failed")
