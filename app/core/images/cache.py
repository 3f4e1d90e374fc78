import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Tuple, TypeVar

V = TypeVar("V")


class CacheBackend(ABC, Generic[V]):
    """
    Key-value store with expiry used by the image proxy.

    Swap MemoryCache for a shared store (Redis, memcached) by
    implementing these four methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[V]: ...

    @abstractmethod
    def set(self, key: str, value: V) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...


class MemoryCache(CacheBackend[V]):
    """Per-process TTL cache, least recently used entry evicted when full."""

    def __init__(
        self,
        ttl_seconds: float = 900,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock
        self._entries: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, value = entry
        if self.clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: V) -> None:
        self._entries[key] = (self.clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


@dataclass(frozen=True)
class CachedImage:
    data: bytes
    content_type: str
