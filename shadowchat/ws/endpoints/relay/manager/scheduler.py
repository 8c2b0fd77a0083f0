"""Deferred delete notifications for self-destructing messages."""

import asyncio
from typing import Set, Union

from ..models import MessageType
from shadowchat.utils.log import get_logger


class SelfDestructScheduler:
    """Arms one-shot timers that emit ``delete-message`` to a session.

    Recipients are resolved when the timer fires, so a session closed in the
    meantime yields no delivery. Delays are clamped to ``max_delay_ms``.
    """

    def __init__(self, manager, max_delay_ms: int = 5 * 60 * 1000):
        self.manager = manager
        self.max_delay_ms = max_delay_ms
        self._pending: Set[asyncio.Task] = set()
        self.logger = get_logger(__name__)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def clamp(self, delay_ms: float) -> int:
        return int(min(max(delay_ms, 0), self.max_delay_ms))

    def schedule_delete(
        self, session_id: str, message_id: Union[str, int], delay_ms: float
    ) -> int:
        """Arm the timer; returns the effective delay in milliseconds."""
        delay = self.clamp(delay_ms)
        task = asyncio.create_task(self._fire(session_id, message_id, delay))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return delay

    async def _fire(
        self, session_id: str, message_id: Union[str, int], delay_ms: int
    ) -> None:
        await asyncio.sleep(delay_ms / 1000)
        delivered = await self.manager.broadcast_to_session(
            session_id,
            {
                "type": MessageType.DELETE_MESSAGE.value,
                "sessionId": session_id,
                "id": message_id,
            },
        )
        self.logger.debug(
            f"Self-destruct of {message_id} in {session_id} reached {delivered} client(s)"
        )

    async def shutdown(self) -> None:
        """Cancel every pending timer."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()
