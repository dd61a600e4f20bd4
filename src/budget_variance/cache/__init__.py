"""
Caching of computed variance analyses.
"""

from budget_variance.cache.backends import CacheBackend, InMemoryBackend
from budget_variance.cache.result_cache import CachedAnalyzer, ResultCache, cache_key

__all__ = ["CacheBackend", "InMemoryBackend", "CachedAnalyzer", "ResultCache", "cache_key"]
