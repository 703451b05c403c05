"""
TTL cache for scrape results, keyed by source URL + fetch cap.

Expiry is lazy: a stale entry is evicted by the lookup that finds it.
There is no capacity bound; prune_expired() sweeps everything stale.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable

from .config import REVIEW_CACHE_TTL_SECONDS
from .models import ScrapeResult
from .store import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    timestamp: float
    payload: ScrapeResult


class ReviewCache:
    def __init__(
        self,
        store: KeyValueStore,
        ttl: float = REVIEW_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.ttl = ttl
        self.clock = clock

    @staticmethod
    def key_for(url: str, fetch_cap: int) -> str:
        return f"{url}|{fetch_cap}"

    def _expired(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.timestamp >= self.ttl

    def get(self, key: str) -> ScrapeResult | None:
        entry = self.store.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            self.store.delete(key)
            logger.info(f"[Cache] Evicted stale entry for {key}")
            return None
        return entry.payload

    def put(self, key: str, payload: ScrapeResult) -> None:
        self.store.put(key, CacheEntry(timestamp=self.clock(), payload=payload))

    def prune_expired(self) -> int:
        return self.store.prune(lambda _key, entry: entry is not None and self._expired(entry))
