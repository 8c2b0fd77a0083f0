"""In-memory relay state models."""

from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class IdentityEntry(BaseModel):
    """A registered identity and the connection that owns it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user_id: str
    display_name: str
    connection: Any
    registered_at: int


class Session(BaseModel):
    """An active two-party conversation."""

    session_id: str
    participants: Tuple[str, str]
    created_at: int
    expires_at: Optional[int] = None

    def includes(self, user_id: str) -> bool:
        return user_id in self.participants

    def peer_of(self, user_id: str) -> Optional[str]:
        """The other participant, or ``None`` if ``user_id`` is not in the session."""
        first, second = self.participants
        if user_id == first:
            return second
        if user_id == second:
            return first
        return None


class Group(BaseModel):
    """A multi-party room. ``members`` is kept in join order."""

    group_id: str
    name: str
    owner_id: str
    members: List[str] = Field(default_factory=list)
    pending: List[str] = Field(default_factory=list)
    created_at: int

    def is_member(self, user_id: str) -> bool:
        return user_id in self.members
