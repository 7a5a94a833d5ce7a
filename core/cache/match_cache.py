"""Match Cache Service - Redis caching for per-user candidate lists."""
import json
import logging
from typing import Optional, Dict, Any, List, Callable, Iterable
from datetime import datetime, timezone, timedelta
from urllib.parse import urlparse

from redis import Redis

logger = logging.getLogger(__name__)


def _sanitize_url(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            sanitized = parsed._replace(
                netloc=f"{parsed.username or ''}:*@{parsed.hostname}:{parsed.port or 6379}"
            )
            return sanitized.geturl()
        return url
    except Exception:
        return url


class MatchCacheService:
    """
    Cache of each user's swipeable candidates.

    Entries are stamped with the user's generation counter. invalidate() bumps
    the counter, so an entry written by a loader that started before the
    invalidation is never served afterwards, even if it lands in Redis late.

    When Redis is unreachable every read recomputes through the loader.
    """

    def __init__(
        self,
        ttl_seconds: int,
        redis_url: str = "redis://localhost:6379/0",
        password: Optional[str] = None,
        key_prefix: str = "match_cache",
        redis_client: Optional[Redis] = None
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.redis_url = redis_url
        self.password = password
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self._redis: Optional[Redis] = None
        self._available = False

        try:
            self._redis = redis_client or Redis.from_url(
                redis_url,
                password=password,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self._redis.ping()
            self._available = True
            logger.info(f"Match cache connected to Redis at {_sanitize_url(redis_url)}")
        except Exception as e:
            logger.warning(f"Match cache Redis unavailable, recomputing on every read: {e}")
            self._redis = None
            self._available = False

    @property
    def is_available(self) -> bool:
        """Check if cache is available."""
        if not self._available or not self._redis:
            return False
        try:
            return bool(self._redis.ping())
        except Exception:
            return False

    def _make_key(self, user_id: str) -> str:
        return f"{self.key_prefix}:{user_id}"

    def _generation_key(self, user_id: str) -> str:
        return f"{self.key_prefix}:{user_id}:gen"

    def _current_generation(self, user_id: str) -> int:
        value = self._redis.get(self._generation_key(user_id))
        return int(value) if value is not None else 0

    def _read_entry(self, user_id: str, generation: int) -> Optional[List[str]]:
        data = self._redis.get(self._make_key(user_id))
        if not data:
            logger.debug(f"Cache miss for user {user_id}")
            return None

        cache_entry = json.loads(data)
        if cache_entry.get("generation") != generation:
            logger.debug(f"Stale cache entry for user {user_id} "
                         f"(gen {cache_entry.get('generation')} != {generation})")
            return None

        expires_at = cache_entry.get("expires_at")
        if expires_at and datetime.fromisoformat(expires_at) <= datetime.now(timezone.utc):
            logger.debug(f"Expired cache entry for user {user_id}")
            return None

        logger.debug(f"Cache hit for user {user_id}")
        return list(cache_entry.get("candidates", []))

    def _write_entry(self, user_id: str, generation: int, candidates: List[str]) -> None:
        now = datetime.now(timezone.utc)
        cache_entry = {
            "generation": generation,
            "candidates": candidates,
            "cached_at": now.isoformat(),
            "expires_at": (now + timedelta(seconds=self.ttl_seconds)).isoformat(),
        }
        # An invalidation that raced the loader already bumped the counter
        if self._current_generation(user_id) != generation:
            logger.debug(f"Discarding candidate list for {user_id}; invalidated while loading")
            return
        self._redis.setex(self._make_key(user_id), self.ttl_seconds, json.dumps(cache_entry))
        logger.debug(f"Cached {len(candidates)} candidates for {user_id} (TTL: {self.ttl_seconds}s)")

    def get_candidates(self, user_id: str, loader: Callable[[], List[str]]) -> List[str]:
        """
        Return the user's candidate list, loading and caching it on a miss.

        `loader` must return the pool minus everything the user has swiped,
        in pool order.
        """
        if not self.is_available:
            return list(loader())

        try:
            # Read before loading so a concurrent invalidate() makes our write stale
            generation = self._current_generation(user_id)
            cached = self._read_entry(user_id, generation)
            if cached is not None:
                return cached
        except Exception as e:
            logger.warning(f"Error reading from match cache: {e}")
            return list(loader())

        candidates = list(loader())

        try:
            self._write_entry(user_id, generation, candidates)
        except Exception as e:
            logger.warning(f"Error writing to match cache: {e}")
        return candidates

    def invalidate(self, user_id: str) -> bool:
        """
        Bump the user's generation and drop their entry.

        The entry is deleted even when the generation bump fails, so a
        partial Redis failure never leaves the old list being served.
        """
        if not self._redis:
            return False

        gen_key = self._generation_key(user_id)
        bumped = True
        try:
            generation = self._redis.incr(gen_key)
            # Outlive any entry written under the previous generation
            self._redis.expire(gen_key, self.ttl_seconds * 2)
            logger.debug(f"Bumped match cache generation for {user_id} to {generation}")
        except Exception as e:
            logger.warning(f"Error bumping match cache generation for {user_id}: {e}")
            bumped = False

        try:
            self._redis.delete(self._make_key(user_id))
        except Exception as e:
            logger.warning(f"Error invalidating match cache for {user_id}: {e}")
            return False
        return bumped

    def invalidate_many(self, user_ids: Iterable[str]) -> int:
        """Invalidate each listed user. Returns how many were invalidated."""
        count = 0
        for user_id in dict.fromkeys(user_ids):
            if self.invalidate(user_id):
                count += 1
        return count

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        if not self.is_available:
            return {"available": False}

        try:
            info = self._redis.info()
            entry_count = 0
            cursor = 0
            while True:
                cursor, keys = self._redis.scan(cursor=cursor, match=f"{self.key_prefix}:*", count=1000)
                entry_count += len([k for k in keys if not k.endswith(":gen")])
                if cursor == 0:
                    break
            return {
                "available": True,
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "candidate_cache_keys": entry_count,
                "ttl_seconds": self.ttl_seconds,
            }
        except Exception as e:
            logger.warning(f"Error getting cache stats: {e}")
            return {"available": False, "error": str(e)}

    def clear_all(self) -> bool:
        """Clear all cached candidate lists. Generation counters are kept."""
        if not self.is_available:
            return False

        try:
            cursor = 0
            deleted = 0

            while True:
                cursor, keys = self._redis.scan(cursor=cursor, match=f"{self.key_prefix}:*", count=100)
                entries = [k for k in keys if not k.endswith(":gen")]
                if entries:
                    self._redis.delete(*entries)
                    deleted += len(entries)
                if cursor == 0:
                    break

            logger.info(f"Cleared {deleted} candidate lists from cache")
            return True

        except Exception as e:
            logger.warning(f"Error clearing match cache: {e}")
            return False
