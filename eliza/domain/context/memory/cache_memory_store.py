from abc import ABC, abstractmethod
from typing import Dict, Any, Callable, Optional
import asyncio
from datetime import datetime, timedelta, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheManager(ABC):
    """Key-value cache contract used by the embedding pipeline"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass


class CacheMemoryStore(CacheManager):
    """In-memory cache store with TTL support.

    Every ``sweep_interval``-th ``set`` also drops expired entries, so keys
    that are never read again do not accumulate.
    """

    def __init__(
        self,
        default_ttl: Optional[int] = 3600,
        clock: Callable[[], datetime] = _utcnow,
        sweep_interval: int = 256,
    ):
        self.cache: Dict[str, Dict[str, Any]] = {}
        self.default_ttl = default_ttl
        self.sweep_interval = max(1, sweep_interval)
        self._clock = clock
        self._lock = asyncio.Lock()
        self._sets_since_sweep = 0

    def _expired(self, entry: Dict[str, Any], now: datetime) -> bool:
        return entry["expires_at"] is not None and now > entry["expires_at"]

    def _drop_expired(self) -> int:
        now = self._clock()
        expired_keys = [key for key, entry in self.cache.items() if self._expired(entry, now)]
        for key in expired_keys:
            del self.cache[key]
        return len(expired_keys)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Set a value; ``ttl`` in seconds falls back to the store default"""

        ttl = self.default_ttl if ttl is None else ttl
        async with self._lock:
            expires_at = self._clock() + timedelta(seconds=ttl) if ttl is not None else None
            self.cache[key] = {
                "value": value,
                "expires_at": expires_at
            }
            self._sets_since_sweep += 1
            if self._sets_since_sweep >= self.sweep_interval:
                self._sets_since_sweep = 0
                self._drop_expired()

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired"""

        async with self._lock:
            entry = self.cache.get(key)
            if entry is None:
                return None

            if self._expired(entry, self._clock()):
                del self.cache[key]
                return None

            return entry["value"]

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self.cache.pop(key, None) is not None

    async def clear_expired(self) -> int:
        """Clear expired entries and return count"""

        async with self._lock:
            return self._drop_expired()

    async def get_stats(self) -> Dict[str, Any]:
        async with self._lock:
            now = self._clock()
            active_count = sum(1 for entry in self.cache.values() if not self._expired(entry, now))
            return {
                "total_keys": len(self.cache),
                "active_keys": active_count,
                "expired_keys": len(self.cache) - active_count
            }
