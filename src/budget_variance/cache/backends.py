"""
Key/value storage backends for cached analysis results.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Set, Tuple

KEY_PREFIX = "variance:"


class CacheBackend(ABC):
    """Storage interface used by ResultCache. Values are serialized strings."""

    name = "abstract"

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or expired."""

    @abstractmethod
    def set(self, key: str, value: str, ttl: int) -> None:
        """Store a value that expires after ttl seconds."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it was present."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """True if the key is present and not expired."""

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """Live keys starting with prefix."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Drop expired entries. Returns the number removed."""

    def size(self) -> int:
        return len(self.keys())


def _organization_of(key: str) -> Optional[str]:
    if not key.startswith(KEY_PREFIX):
        return None
    return key[len(KEY_PREFIX):].split(":", 1)[0]


class InMemoryBackend(CacheBackend):
    """
    Process-local backend: a dict guarded by a lock.

    Keeps a secondary index of keys per organization so invalidation by
    organization does not need to scan the whole store. Expired entries are
    dropped lazily on read and in bulk every cleanup_interval seconds on write.
    """

    name = "in-memory"

    def __init__(self, cleanup_interval: int = 300, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            cleanup_interval: Seconds between opportunistic purges
            clock: Time source in seconds; injectable for tests
        """
        self.cleanup_interval = cleanup_interval
        self.clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._org_index: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()
        self.logger = logging.getLogger(__name__)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self.clock() >= expires_at:
                self._remove(key)
                return None
            return value

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            now = self.clock()
            self._entries[key] = (value, now + ttl)
            org = _organization_of(key)
            if org is not None:
                self._org_index.setdefault(org, set()).add(key)
            if now - self._last_cleanup >= self.cleanup_interval:
                self._purge(now)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._remove(key)

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            now = self.clock()
            org = _organization_of(prefix)
            if org is not None and prefix.startswith(f"{KEY_PREFIX}{org}:"):
                candidates = self._org_index.get(org, set())
            else:
                candidates = self._entries.keys()
            return sorted(k for k in candidates
                          if k.startswith(prefix) and self._entries[k][1] > now)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge(self.clock())

    def _purge(self, now: float) -> int:
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            self._remove(key)
        self._last_cleanup = now
        if expired:
            self.logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def _remove(self, key: str) -> bool:
        if self._entries.pop(key, None) is None:
            return False
        org = _organization_of(key)
        if org is not None and org in self._org_index:
            self._org_index[org].discard(key)
            if not self._org_index[org]:
                del self._org_index[org]
        return True
