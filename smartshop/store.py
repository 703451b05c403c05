"""
Key/value store used by the review cache and the rate limiter.

The in-memory implementation is process-local and unlocked: every operation is
synchronous, so on a single event loop no two calls interleave. A shared
backend (Redis, a KV service) only has to implement KeyValueStore.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Any | None:
        ...

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> Iterable[str]:
        ...

    def prune(self, predicate: Callable[[str, Any], bool]) -> int:
        """Delete every entry for which predicate(key, value) is true."""
        doomed = [k for k in list(self.keys()) if predicate(k, self.get(k))]
        for key in doomed:
            self.delete(key)
        return len(doomed)


class InMemoryStore(KeyValueStore):
    def __init__(self):
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def put(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterable[str]:
        return self._data.keys()

    def __len__(self) -> int:
        return len(self._data)
