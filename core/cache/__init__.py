"""Cache Module - Caching services."""
from core.cache.match_cache import MatchCacheService

__all__ = [
    'MatchCacheService',
]
