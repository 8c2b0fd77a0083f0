"""WebSocket admission utilities."""

from typing import Iterable, Optional

from fastapi import WebSocket, status


def origin_allowed(origin: Optional[str], allowed_origins: Iterable[str]) -> bool:
    """Whether a browser ``Origin`` may open a relay socket.

    Non-browser clients send no ``Origin`` and are admitted.
    """
    allowed = [o.rstrip("/") for o in allowed_origins]
    if "*" in allowed or not origin:
        return True
    return origin.rstrip("/") in allowed


async def admit_websocket(websocket: WebSocket, allowed_origins: Iterable[str]) -> bool:
    """Close the socket with 1008 when its origin is not allowed."""
    if origin_allowed(websocket.headers.get("origin"), allowed_origins):
        return True
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
    return False
