"""Pairwise session and group state."""

from typing import Callable, Dict, List, Optional, Tuple

from ..models import Group, Session
from ..utils import (
    SESSION_SEPARATOR,
    GroupNotFoundError,
    PermissionDeniedError,
    now_ms,
    new_group_id,
)
from shadowchat.utils.log import get_logger

DEFAULT_GROUP_NAME = "Group Chat"


class SessionManager:
    """Owns session and group state.

    Every method is synchronous and completes without yielding, so callers on
    the event loop always observe a consistent state. Notification is the
    caller's job; methods that remove state return what they removed.
    """

    def __init__(self, ttl_ms: int = 30 * 60 * 1000, clock: Callable[[], int] = now_ms):
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._groups: Dict[str, Group] = {}
        self.logger = get_logger(__name__)

    def reset(self) -> None:
        self._sessions.clear()
        self._groups.clear()

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def group_count(self) -> int:
        return len(self._groups)

    # ------------------------------------------------------------------
    # Pairwise sessions
    # ------------------------------------------------------------------

    @staticmethod
    def session_id_for(first_id: str, second_id: str) -> str:
        """Both sides derive the same id regardless of who initiated."""
        return SESSION_SEPARATOR.join(sorted((first_id, second_id)))

    def open_pairwise(self, from_id: str, to_id: str) -> Session:
        """Create (or overwrite) the session between two identities."""
        session_id = self.session_id_for(from_id, to_id)
        created_at = self._clock()
        session = Session(
            session_id=session_id,
            participants=tuple(sorted((from_id, to_id))),
            created_at=created_at,
            expires_at=created_at + self.ttl_ms,
        )
        self._sessions[session_id] = session
        return session

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def participants_of(self, session_id: str) -> Optional[Tuple[str, str]]:
        session = self._sessions.get(session_id)
        return session.participants if session else None

    def close_session(self, session_id: str) -> Optional[Session]:
        """Remove a session; returns it, or ``None`` if already gone."""
        return self._sessions.pop(session_id, None)

    def sessions_for(self, user_id: str) -> List[Session]:
        return [s for s in self._sessions.values() if s.includes(user_id)]

    def close_sessions_for(self, user_id: str) -> List[Session]:
        closed = []
        for session in self.sessions_for(user_id):
            closed.append(self._sessions.pop(session.session_id))
        return closed

    def sweep_expired(self, now: Optional[int] = None) -> List[Session]:
        """Remove sessions older than the TTL and return them."""
        now = self._clock() if now is None else now
        expired = [
            s for s in self._sessions.values() if now - s.created_at > self.ttl_ms
        ]
        for session in expired:
            del self._sessions[session.session_id]
        if expired:
            self.logger.info(f"Expired {len(expired)} session(s)")
        return expired

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(self, owner_id: str, name: Optional[str] = None) -> Group:
        group_id = new_group_id()
        while group_id in self._groups:
            group_id = new_group_id()

        group = Group(
            group_id=group_id,
            name=name or DEFAULT_GROUP_NAME,
            owner_id=owner_id,
            members=[owner_id],
            created_at=self._clock(),
        )
        self._groups[group_id] = group
        return group

    def get_group(self, group_id: str) -> Optional[Group]:
        return self._groups.get(group_id)

    def _require_group(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise GroupNotFoundError(f"Group {group_id} not found")
        return group

    def join_directly(self, group_id: str, user_id: str) -> Tuple[Group, bool]:
        """Open policy: add ``user_id`` at once. Returns (group, newly_added)."""
        group = self._require_group(group_id)
        if group.is_member(user_id):
            return group, False
        group.members.append(user_id)
        if user_id in group.pending:
            group.pending.remove(user_id)
        return group, True

    def request_join(self, group_id: str, user_id: str) -> Tuple[Group, bool]:
        """Approval policy: queue a request. Returns (group, newly_queued)."""
        group = self._require_group(group_id)
        if group.is_member(user_id) or user_id in group.pending:
            return group, False
        group.pending.append(user_id)
        return group, True

    def _require_pending(self, group_id: str, owner_id: str, user_id: str) -> Group:
        group = self._require_group(group_id)
        if group.owner_id != owner_id:
            raise PermissionDeniedError(
                f"{owner_id} is not the owner of group {group_id}"
            )
        if user_id not in group.pending:
            raise PermissionDeniedError(
                f"No pending join request from {user_id} for group {group_id}"
            )
        return group

    def approve_join(self, group_id: str, owner_id: str, user_id: str) -> Group:
        group = self._require_pending(group_id, owner_id, user_id)
        group.pending.remove(user_id)
        group.members.append(user_id)
        return group

    def reject_join(self, group_id: str, owner_id: str, user_id: str) -> Group:
        group = self._require_pending(group_id, owner_id, user_id)
        group.pending.remove(user_id)
        return group

    def leave_group(self, group_id: str, user_id: str) -> Tuple[Group, bool]:
        """Remove a member. Returns (group, dissolved).

        If the owner leaves, the earliest remaining member takes over.
        """
        group = self._require_group(group_id)
        if user_id in group.pending:
            group.pending.remove(user_id)
        if not group.is_member(user_id):
            return group, False

        group.members.remove(user_id)
        if not group.members:
            del self._groups[group_id]
            return group, True
        if group.owner_id == user_id:
            group.owner_id = group.members[0]
        return group, False
