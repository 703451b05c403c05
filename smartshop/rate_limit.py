"""
Sliding-window rate limiter: per client key, the timestamps of allowed
requests inside the trailing window are kept and counted on every check.
"""
import logging
import time
from typing import Callable

from .config import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS
from .store import KeyValueStore

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    def __init__(
        self,
        store: KeyValueStore,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window = window
        self.clock = clock

    def is_limited(self, client_key: str) -> bool:
        """Records the request and returns False, or returns True without recording it."""
        now = self.clock()
        cutoff = now - self.window
        recent = [ts for ts in (self.store.get(client_key) or []) if ts >= cutoff]

        if len(recent) >= self.max_requests:
            self.store.put(client_key, recent)
            logger.warning(f"[RateLimit] {client_key} over {self.max_requests}/{self.window:.0f}s")
            return True

        recent.append(now)
        self.store.put(client_key, recent)
        return False

    def prune_idle(self) -> int:
        cutoff = self.clock() - self.window
        return self.store.prune(lambda _key, stamps: not any(ts >= cutoff for ts in stamps or []))
