"""Per identity sliding window rate limit on inbound messages."""

import time
from collections import deque
from typing import Callable

from loguru import logger

from src.core.exceptions import RateLimitedError


class SlidingWindowRateLimiter:
    def __init__(
        self,
        max_events: int,
        window_sec: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_events = max_events
        self.window_sec = window_sec
        self.clock = clock
        self._events: dict[str, deque[float]] = {}

    def allow(self, identity: str) -> bool:
        """Record one message. False when the identity already used up its budget for the current window."""
        now = self.clock()
        events = self._events.setdefault(identity, deque())
        while events and events[0] <= now - self.window_sec:
            events.popleft()
        if len(events) >= self.max_events:
            return False
        events.append(now)
        return True

    def check(self, identity: str) -> None:
        if not self.allow(identity):
            logger.warning(f"Rate limit hit for {identity}")
            raise RateLimitedError(
                f"More than {self.max_events} messages in {self.window_sec:g}s. Slow down."
            )

    def forget(self, identity: str) -> None:
        """Drop the history of an identity, called once its last connection is gone."""
        self._events.pop(identity, None)

    def tracked_identities(self) -> int:
        return len(self._events)
