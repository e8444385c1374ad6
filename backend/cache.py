"""
Short-lived cache for upstream availability snapshots and geocoder results
"""
import json
import hashlib
import time
from typing import Optional, Any, Callable
from functools import wraps
import redis
from config import get_settings
from logging_config import get_logger
from monitoring import cache_hits, cache_misses

logger = get_logger(__name__)
settings = get_settings()


class CacheManager:
    """Redis when configured, otherwise an in-process TTL map"""

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_client = None
        self.memory_cache = {}
        if redis_url:
            self._init_redis(redis_url)

    def _init_redis(self, redis_url: str):
        try:
            self.redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self.redis_client.ping()
            logger.info("Redis cache initialized successfully")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed, using memory cache: {e}")
            self.redis_client = None

    @property
    def backend(self) -> str:
        return "redis" if self.redis_client else "memory"

    def make_key(self, prefix: str, params: Any) -> str:
        """Stable key from a prefix and JSON-serializable parameters"""
        encoded = json.dumps(params, sort_keys=True, default=str)
        return f"{prefix}:{hashlib.md5(encoded.encode()).hexdigest()}"

    def get(self, key: str) -> Optional[Any]:
        try:
            if self.redis_client:
                value = self.redis_client.get(key)
                if value:
                    return json.loads(value)
            elif key in self.memory_cache:
                data, expires_at = self.memory_cache[key]
                if time.monotonic() < expires_at:
                    return data
                del self.memory_cache[key]
        except redis.RedisError as e:
            logger.error(f"Cache get error: {e}")
        return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        ttl = ttl or settings.cache_ttl
        try:
            if self.redis_client:
                return bool(self.redis_client.setex(key, ttl, json.dumps(value)))
            self.memory_cache[key] = (value, time.monotonic() + ttl)
            return True
        except (redis.RedisError, TypeError) as e:
            logger.error(f"Cache set error: {e}")
            return False

    def delete(self, pattern: str) -> int:
        """Delete keys matching a glob-style prefix pattern"""
        try:
            if self.redis_client:
                keys = self.redis_client.keys(pattern)
                return self.redis_client.delete(*keys) if keys else 0
            prefix = pattern.rstrip('*')
            doomed = [k for k in self.memory_cache if k.startswith(prefix)]
            for key in doomed:
                del self.memory_cache[key]
            return len(doomed)
        except redis.RedisError as e:
            logger.error(f"Cache delete error: {e}")
        return 0

    def clear_expired(self):
        if not self.redis_client:
            now = time.monotonic()
            expired = [k for k, (_, exp) in self.memory_cache.items() if exp <= now]
            for key in expired:
                del self.memory_cache[key]


cache = CacheManager(settings.redis_url)


def cached(prefix: str, ttl: Optional[int] = None):
    """Cache an async client method's result; the bound instance is not part of the key"""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            cache_key = cache.make_key(prefix, {"args": args, "kwargs": kwargs})

            cached_result = cache.get(cache_key)
            if cached_result is not None:
                cache_hits.labels(cache_type=prefix).inc()
                return cached_result

            cache_misses.labels(cache_type=prefix).inc()
            result = await func(self, *args, **kwargs)
            cache.set(cache_key, result, ttl)
            return result
        return wrapper
    return decorator
