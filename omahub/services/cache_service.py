"""
Redis read cache, one namespace per user.

Keys look like ``{prefix}:user:{user_id}:{module}:{key}``. Values are stored
as JSON, so only JSON-ready data (the serialized basket, for instance) is
cached. Every Redis error degrades to a cache miss; the cache never fails a
request.
"""

import json
import logging
from typing import Any, Callable, Optional

import redis
from redis.exceptions import RedisError
from flask import Flask

logger = logging.getLogger(__name__)


class CacheService:
    """Per-user cache-aside helper."""

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self.prefix = 'omahub'
        self.default_ttl = 60

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self.prefix = app.config.get('CACHE_KEY_PREFIX', 'omahub')
        self.default_ttl = app.config.get('CACHE_DEFAULT_TTL', 60)

        if not app.config.get('CACHE_ENABLED', True):
            logger.info("[CACHE] Disabled via config")
            return

        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')
        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30
            )
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] Redis unavailable at {redis_url}: {e}. Running without cache.")
            return

        self.client = client
        logger.info(f"[CACHE] Redis connected: {redis_url}")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def key(self, user_id: str, module: str, key: str) -> str:
        return f"{self.prefix}:user:{user_id}:{module}:{key}"

    def get(self, user_id: str, module: str, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            raw = self.client.get(self.key(user_id, module, key))
            return json.loads(raw) if raw is not None else None
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] Read failed for user {user_id}/{module}: {e}")
            return None

    def set(self, user_id: str, module: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.enabled:
            return False
        try:
            self.client.setex(self.key(user_id, module, key), ttl or self.default_ttl, json.dumps(value))
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Write failed for user {user_id}/{module}: {e}")
            return False

    def memoize(self, user_id: str, module: str, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Cached value, or the loader's result (which is then cached)."""
        cached = self.get(user_id, module, key)
        if cached is not None:
            return cached
        value = loader()
        self.set(user_id, module, key, value, ttl)
        return value

    def invalidate_module(self, user_id: str, module: str) -> int:
        """Drop every cached key of one module for one user."""
        if not self.enabled:
            return 0
        pattern = self.key(user_id, module, '*')
        try:
            keys = list(self.client.scan_iter(match=pattern, count=100))
            if keys:
                self.client.delete(*keys)
                logger.info(f"[CACHE] INVALIDATE: {pattern} ({len(keys)} keys)")
            return len(keys)
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidate failed for {pattern}: {e}")
            return 0


_cache_service: Optional[CacheService] = None


def init_cache(app: Flask) -> None:
    """Initialize cache service singleton."""
    global _cache_service
    _cache_service = CacheService(app)
    app.extensions['cache'] = _cache_service


def get_cache() -> CacheService:
    """Get cache service instance."""
    if _cache_service is None:
        raise RuntimeError("Cache not initialized.")
    return _cache_service
