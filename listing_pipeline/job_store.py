"""
Key-value storage for import job state, with a time-to-live per entry.
"""
import time
from typing import Callable, Dict, Generic, List, Optional, Protocol, Tuple, TypeVar

from listing_pipeline.config import JOB_TTL_SECONDS

V = TypeVar("V")


class JobStore(Protocol[V]):
    def get(self, key: str) -> Optional[V]:
        ...

    def set(self, key: str, value: V) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...

    def keys(self) -> List[str]:
        ...


class InMemoryJobStore(Generic[V]):
    """
    Process-local store. Entries expire `ttl_seconds` after their last write
    and are evicted lazily on access.
    """

    def __init__(self, ttl_seconds: float = JOB_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, V]] = {}

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def get(self, key: str) -> Optional[V]:
        self._evict_expired()
        entry = self._entries.get(key)
        return entry[1] if entry is not None else None

    def set(self, key: str, value: V) -> None:
        self._evict_expired()
        self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def delete(self, key: str) -> bool:
        self._evict_expired()
        return self._entries.pop(key, None) is not None

    def keys(self) -> List[str]:
        self._evict_expired()
        return list(self._entries)
