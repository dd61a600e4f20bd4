"""
Result cache for variance analyses, keyed by (organization, board, period).

Cache failures never reach the caller: reads degrade to a miss and writes
are dropped, both with an error logged.
"""

import json
import logging
import time
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Sequence, Union

from budget_variance.cache.backends import KEY_PREFIX, CacheBackend, InMemoryBackend
from budget_variance.data.models import ActualLine, AnalysisResult, BudgetLine

DEFAULT_TTL = 3600


def cache_key(organization_id: str, board_id: Union[int, str], period: str) -> str:
    """Build the cache key for one organization/board/period."""
    return f"{KEY_PREFIX}{organization_id}:{board_id}:{period}"


class ResultCache:
    """Serializing front end over a CacheBackend."""

    def __init__(self, backend: Optional[CacheBackend] = None, ttl: int = DEFAULT_TTL):
        """
        Args:
            backend: Storage backend (in-memory by default)
            ttl: Default entry lifetime in seconds
        """
        if ttl <= 0:
            raise ValueError(f"Cache TTL must be positive, got {ttl}")
        self.backend = backend if backend is not None else InMemoryBackend()
        self.ttl = ttl
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings, backend: Optional[CacheBackend] = None) -> "ResultCache":
        """Build a cache using the TTL and cleanup interval from Settings."""
        if backend is None:
            backend = InMemoryBackend(cleanup_interval=settings.cache_cleanup_interval)
        return cls(backend=backend, ttl=settings.cache_ttl)

    def get(self, key: str) -> Optional[AnalysisResult]:
        """Cached result for key, or None on miss, expiry or read failure."""
        try:
            raw = self.backend.get(key)
            if raw is None:
                self.logger.debug(f"Cache miss: {key}")
                return None
            result = AnalysisResult.from_dict(json.loads(raw))
            self.logger.debug(f"Cache hit: {key}")
            return result
        except Exception as e:
            self.logger.error(f"Cache get error for {key}: {e}")
            return None

    def set(self, key: str, result: AnalysisResult, ttl: Optional[int] = None) -> bool:
        """
        Store a result.

        Args:
            key: Cache key
            result: Analysis result to store as-is
            ttl: Lifetime in seconds (defaults to the cache TTL); must be positive

        Returns:
            True if the write succeeded
        """
        if ttl is None:
            ttl = self.ttl
        if ttl <= 0:
            self.logger.error(f"Not caching {key}: TTL must be positive, got {ttl}")
            return False
        try:
            self.backend.set(key, json.dumps(result.to_dict()), ttl)
            self.logger.debug(f"Cached result under {key} (ttl={ttl}s)")
            return True
        except Exception as e:
            self.logger.error(f"Cache set error for {key}: {e}")
            return False

    def exists(self, key: str) -> bool:
        try:
            return self.backend.exists(key)
        except Exception as e:
            self.logger.error(f"Cache exists check error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            return self.backend.delete(key)
        except Exception as e:
            self.logger.error(f"Cache delete error for {key}: {e}")
            return False

    def invalidate(self, organization_id: str, board_id: Union[int, str, None] = None,
                   period: Optional[str] = None) -> int:
        """
        Remove cached results.

        With board and period, removes that one entry; with board only, every
        period for the board; with neither, everything for the organization.

        Returns:
            Number of entries removed

        Raises:
            ValueError: If a period is given without a board
        """
        if period is not None and board_id is None:
            raise ValueError("Invalidating a period requires a board id")
        try:
            if board_id is not None and period is not None:
                removed = int(self.backend.delete(cache_key(organization_id, board_id, period)))
            else:
                prefix = f"{KEY_PREFIX}{organization_id}:"
                if board_id is not None:
                    prefix += f"{board_id}:"
                removed = sum(1 for key in self.backend.keys(prefix) if self.backend.delete(key))
            self.logger.info(f"Invalidated {removed} cache entries for organization {organization_id}")
            return removed
        except Exception as e:
            self.logger.error(f"Cache invalidation error for organization {organization_id}: {e}")
            return 0

    def stats(self) -> Dict[str, Any]:
        """Backend type, entry count and live keys."""
        try:
            keys = self.backend.keys()
            return {"type": self.backend.name, "size": len(keys), "keys": keys}
        except Exception as e:
            self.logger.error(f"Cache stats error: {e}")
            return {"type": self.backend.name}


class CachedAnalyzer:
    """Get-or-compute wrapper around a VarianceEngine."""

    def __init__(self, engine=None, cache: Optional[ResultCache] = None):
        if engine is None:
            from budget_variance.analysis.engine import default_engine
            engine = default_engine
        self.engine = engine
        self.cache = cache if cache is not None else ResultCache()
        self.logger = logging.getLogger(__name__)

    def analyze_period(self, organization_id: str, board_id: Union[int, str], period: str,
                       budget_loader: Callable[[], Sequence[BudgetLine]],
                       actual_loader: Callable[[], Sequence[ActualLine]],
                       options=None, historical=None,
                       force_refresh: bool = False) -> AnalysisResult:
        """
        Return the cached analysis for the period or compute and cache it.

        Loaders are only called on a miss.

        Args:
            organization_id: Tenant identifier
            board_id: Board identifier
            period: Period label
            budget_loader: Callable returning budget lines
            actual_loader: Callable returning actual lines
            options: Analysis options
            historical: Account id -> past variances
            force_refresh: Skip the cache read

        Returns:
            AnalysisResult carrying its cache key
        """
        key = cache_key(organization_id, board_id, period)

        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                self.logger.info(f"Using cached variance analysis {key}")
                return cached

        start_time = time.time()
        result = self.engine.analyze(budget_loader(), actual_loader(), options, historical)
        result = replace(result, cache_key=key)
        self.cache.set(key, result)
        self.logger.info(f"Computed variance analysis {key} in {time.time() - start_time:.2f}s")
        return result
