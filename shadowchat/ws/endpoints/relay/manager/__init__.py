"""Relay state and timers."""

from .connection_manager import ConnectionManager
from .liveness import LivenessMonitor
from .presence import PresenceRegistry
from .rate_limiter import RateLimiter
from .scheduler import SelfDestructScheduler
from .session_manager import SessionManager

__all__ = [
    "ConnectionManager",
    "LivenessMonitor",
    "PresenceRegistry",
    "RateLimiter",
    "SelfDestructScheduler",
    "SessionManager",
]
