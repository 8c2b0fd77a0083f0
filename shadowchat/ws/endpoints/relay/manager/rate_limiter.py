"""Per-identity fixed-window admission control."""

import time
from typing import Callable, Dict

from pydantic import BaseModel


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class RateBucket(BaseModel):
    window_start: int
    count: int


class RateLimiter:
    """Admits at most ``max_events`` per ``window_ms`` for each key.

    A denial is meant to end the offending connection, not to throttle it.
    """

    def __init__(
        self,
        window_ms: int = 5_000,
        max_events: int = 40,
        clock: Callable[[], int] = _monotonic_ms,
    ):
        self.window_ms = window_ms
        self.max_events = max_events
        self._clock = clock
        self._buckets: Dict[str, RateBucket] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def reset(self) -> None:
        self._buckets.clear()

    def admit(self, key: str) -> bool:
        now = self._clock()
        bucket = self._buckets.get(key)
        if bucket is None or now - bucket.window_start > self.window_ms:
            self._buckets[key] = RateBucket(window_start=now, count=1)
            return True

        bucket.count += 1
        return bucket.count <= self.max_events

    def forget(self, key: str) -> None:
        self._buckets.pop(key, None)

    def prune(self) -> int:
        """Drop buckets whose window has elapsed. Returns how many were dropped."""
        now = self._clock()
        stale = [
            key
            for key, bucket in self._buckets.items()
            if now - bucket.window_start > self.window_ms
        ]
        for key in stale:
            del self._buckets[key]
        return len(stale)
