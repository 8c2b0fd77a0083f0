"""Connection manager: the single owner of all relay state."""

from typing import Any, Dict, Iterable, List, Optional

from fastapi import WebSocket

from ..models import Connection, Group, IdentityEntry, MessageType, RelayMetrics
from .presence import PresenceRegistry
from .rate_limiter import RateLimiter
from .session_manager import SessionManager
from shadowchat.config import Settings
from shadowchat.utils.log import get_logger


class ConnectionManager:
    """Owns connections, presence, sessions, groups and rate-limit buckets.

    All state is plain in-process maps. Every handler, timer callback and
    sweep runs on the same event loop and mutates these maps without awaiting
    in between, so no locking is needed. Created with the server, cleared by
    ``reset()`` at shutdown.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.connections: Dict[str, Connection] = {}
        self.registry = PresenceRegistry()
        self.sessions = SessionManager(ttl_ms=settings.session_ttl_ms)
        self.rate_limiter = RateLimiter(
            window_ms=settings.rate_limit_window_ms,
            max_events=settings.rate_limit_max_events,
        )

        self.total_connections = 0
        self.total_sessions_started = 0

        self.logger = get_logger(__name__)

    def reset(self) -> None:
        """Reset all state - used at shutdown and in tests."""
        self.connections.clear()
        self.registry.reset()
        self.sessions.reset()
        self.rate_limiter.reset()
        self.total_connections = 0
        self.total_sessions_started = 0
        self.logger.info("Connection manager reset")

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self, websocket: WebSocket) -> Connection:
        """Accept a pre-admitted socket and start tracking it."""
        await websocket.accept()
        connection = Connection(websocket)
        self.track(connection)
        return connection

    def track(self, connection) -> None:
        self.connections[connection.conn_id] = connection
        self.total_connections += 1
        self.logger.info(
            f"Connected {connection.conn_id[:8]} ({len(self.connections)} active)"
        )

    async def disconnect(self, connection) -> None:
        """Tear down a closed connection and whatever identity it still owns."""
        self.connections.pop(connection.conn_id, None)
        # Identity buckets outlive the socket so reconnecting does not reset them.
        self.rate_limiter.forget(f"conn:{connection.conn_id}")
        await self.release_identity(connection)
        self.logger.info(
            f"Disconnected {connection.conn_id[:8]} ({len(self.connections)} active)"
        )

    def admit(self, connection) -> bool:
        return self.rate_limiter.admit(connection.rate_key)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    async def bind_identity(
        self, connection, user_id: str, display_name: Optional[str]
    ) -> IdentityEntry:
        """Register ``user_id`` on ``connection``, releasing any previous id."""
        if connection.user_id and connection.user_id != user_id:
            await self.release_identity(connection)

        entry = self.registry.register(user_id, display_name, connection)
        connection.user_id = user_id
        self.logger.info(f"Registered {user_id}")
        return entry

    async def release_identity(self, connection) -> None:
        """Unregister the connection's identity if it still owns it.

        Sessions of a released identity end and the peers are told so.
        """
        user_id = connection.user_id
        if not user_id:
            return
        if not self.registry.unregister(user_id, connection):
            return

        for session in self.sessions.close_sessions_for(user_id):
            peer_id = session.peer_of(user_id)
            await self.send_to_user(
                peer_id,
                {
                    "type": MessageType.SESSION_ENDED.value,
                    "sessionId": session.session_id,
                    "reason": "peer-disconnected",
                },
            )
            self.logger.info(f"Session {session.session_id} ended: {user_id} left")
        self.logger.info(f"Unregistered {user_id}")

    def owns_identity(self, connection) -> bool:
        """Whether ``connection`` is still the one its identity is bound to.

        A socket superseded by a reconnect under the same id keeps its
        ``user_id`` but no longer speaks for it.
        """
        if connection.user_id is None:
            return False
        entry = self.registry.lookup(connection.user_id)
        return entry is not None and entry.connection is connection

    def display_name_of(self, user_id: Optional[str]) -> str:
        return self.registry.display_name_of(user_id)

    def is_online(self, user_id: str) -> bool:
        return self.registry.lookup(user_id) is not None

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def send_to_user(self, user_id: Optional[str], payload: Dict[str, Any]) -> bool:
        """Deliver to an identity; offline or unknown identities are skipped."""
        entry = self.registry.lookup(user_id) if user_id else None
        if entry is None:
            return False
        return await entry.connection.send(payload)

    async def send_to_users(
        self,
        user_ids: Iterable[str],
        payload: Dict[str, Any],
        exclude: Optional[str] = None,
    ) -> int:
        delivered = 0
        for user_id in user_ids:
            if user_id == exclude:
                continue
            if await self.send_to_user(user_id, payload):
                delivered += 1
        return delivered

    async def broadcast_to_session(
        self,
        session_id: str,
        payload: Dict[str, Any],
        exclude: Optional[str] = None,
    ) -> int:
        """Deliver to the session's current participants, resolved now."""
        participants = self.sessions.participants_of(session_id)
        if participants is None:
            return 0
        return await self.send_to_users(participants, payload, exclude=exclude)

    async def broadcast_to_group(
        self,
        group: Group,
        payload: Dict[str, Any],
        exclude: Optional[str] = None,
    ) -> int:
        # Copy: membership may change while we await sends.
        return await self.send_to_users(list(group.members), payload, exclude=exclude)

    # ------------------------------------------------------------------
    # Session teardown
    # ------------------------------------------------------------------

    async def end_session(self, session_id: str, reason: str) -> bool:
        """Close a session and tell its participants. Idempotent."""
        session = self.sessions.close_session(session_id)
        if session is None:
            return False
        await self.send_to_users(
            session.participants,
            {
                "type": MessageType.SESSION_ENDED.value,
                "sessionId": session_id,
                "reason": reason,
            },
        )
        self.logger.info(f"Session ended ({reason}): {session_id}")
        return True

    async def expire_sessions(self, now: Optional[int] = None) -> List[str]:
        """Remove sessions past their TTL and notify each participant once."""
        expired = self.sessions.sweep_expired(now)
        for session in expired:
            await self.send_to_users(
                session.participants,
                {
                    "type": MessageType.SESSION_ENDED.value,
                    "sessionId": session.session_id,
                    "reason": "expired",
                },
            )
        self.rate_limiter.prune()
        return [session.session_id for session in expired]

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_metrics(self, pending_self_destructs: int = 0) -> RelayMetrics:
        return RelayMetrics(
            activeConnections=len(self.connections),
            totalConnections=self.total_connections,
            totalSessionsStarted=self.total_sessions_started,
            registeredIdentities=len(self.registry),
            activeSessions=self.sessions.session_count,
            activeGroups=self.sessions.group_count,
            pendingSelfDestructs=pending_self_destructs,
        )
