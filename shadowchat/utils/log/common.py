from enum import Enum


class LogType(Enum):
    """Relay log levels beyond the standard ones, with their numeric values."""

    # Session started, group created
    SUCCESS = 25
    # Lifecycle: start-up, shutdown, background tasks
    SYSTEM = 22
    # A client was cut off (rate limit, missed heartbeat)
    FAILURE = 35

    @property
    def label(self) -> str:
        return self.name.lower()
