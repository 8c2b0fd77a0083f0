"""Presence registry: which identity is bound to which connection."""

from typing import Callable, Dict, List, Optional

from ..models import DEFAULT_DISPLAY_NAME, IdentityEntry
from ..utils import now_ms
from shadowchat.utils.log import get_logger


class PresenceRegistry:
    """Maps client-chosen identifiers to their live connection.

    Binding is last-write-wins. Unbinding is conditional on the caller still
    owning the entry, so a stale close never removes a fresher reconnect.
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self._entries: Dict[str, IdentityEntry] = {}
        self._clock = clock
        self.logger = get_logger(__name__)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._entries

    def reset(self) -> None:
        self._entries.clear()

    def register(
        self, user_id: str, display_name: Optional[str], connection
    ) -> IdentityEntry:
        """(Re)bind ``user_id`` to ``connection``, replacing any prior binding."""
        previous = self._entries.get(user_id)
        if previous is not None and previous.connection is not connection:
            self.logger.info(f"Identity {user_id} rebound to a new connection")

        entry = IdentityEntry(
            user_id=user_id,
            display_name=display_name or DEFAULT_DISPLAY_NAME,
            connection=connection,
            registered_at=self._clock(),
        )
        self._entries[user_id] = entry
        return entry

    def lookup(self, user_id: str) -> Optional[IdentityEntry]:
        return self._entries.get(user_id)

    def unregister(self, user_id: str, connection) -> bool:
        """Remove the binding iff it still points at ``connection``."""
        entry = self._entries.get(user_id)
        if entry is None or entry.connection is not connection:
            return False
        del self._entries[user_id]
        return True

    def display_name_of(self, user_id: Optional[str]) -> str:
        entry = self._entries.get(user_id) if user_id else None
        return entry.display_name if entry else DEFAULT_DISPLAY_NAME

    def ids(self) -> List[str]:
        return list(self._entries)
