"""In-process sliding-window rate limiting keyed by source address."""

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable


@dataclass
class RateDecision:
    """Outcome of a single admission check."""
    allowed: bool
    remaining: int
    retry_after: int = 0


class SlidingWindowLimiter:
    """
    Admit at most ``limit`` hits per key within any ``window`` seconds.

    Each key keeps a log of hit timestamps; entries older than the window
    are evicted on every check. Rejected hits are not recorded, so a client
    that keeps retrying regains access exactly one window after its oldest
    admitted hit.
    """

    max_keys = 10_000

    def __init__(
        self,
        limit: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = limit
        self.window = window
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}

    def _evict(self, key: str, now: float) -> deque[float]:
        hits = self._hits.setdefault(key, deque())
        cutoff = now - self.window
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def hit(self, key: str) -> RateDecision:
        """Record a hit for ``key`` if it fits in the window."""
        if len(self._hits) > self.max_keys:
            self.prune()

        now = self._clock()
        hits = self._evict(key, now)

        if len(hits) >= self.limit:
            retry_after = max(1, int(hits[0] + self.window - now + 0.999))
            return RateDecision(allowed=False, remaining=0, retry_after=retry_after)

        hits.append(now)
        return RateDecision(allowed=True, remaining=self.limit - len(hits))

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)

    def prune(self) -> None:
        """Drop keys whose whole log has aged out."""
        now = self._clock()
        for key in list(self._hits):
            if not self._evict(key, now):
                del self._hits[key]
