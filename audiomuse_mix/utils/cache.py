"""
Response cache for similarity backend queries.
Redis-backed when a URL is configured, with an in-memory fallback so a missing
or unreachable Redis never breaks a mix request.
"""

import json
import logging
from collections import OrderedDict
from typing import Any, Optional, Tuple
from datetime import datetime, timedelta
import redis.asyncio as redis

logger = logging.getLogger(__name__)

class ResponseCache:
    """Key/value cache with TTL, Redis first, bounded memory second."""

    def __init__(self, redis_url: Optional[str] = None, key_prefix: str = "audiomuse",
                 max_memory_items: int = 1000):
        """
        Initialize the response cache.

        Args:
            redis_url: Redis connection URL (optional)
            key_prefix: Namespace prepended to every key
            max_memory_items: Size bound for the in-memory fallback
        """
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.redis: Optional[redis.Redis] = None
        self.max_memory_items = max_memory_items
        self._memory: "OrderedDict[str, Tuple[Any, datetime]]" = OrderedDict()

    async def connect(self):
        """Connect to Redis if URL is provided."""
        if not self.redis_url:
            return
        try:
            self.redis = redis.from_url(self.redis_url)
            await self.redis.ping()
            logger.info("Connected to Redis response cache")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis: {e}, using memory cache")
            self.redis = None

    async def close(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    def make_key(self, namespace: str, *parts: Any) -> str:
        """Build a namespaced cache key; None parts are kept as '-' so positions stay stable."""
        rendered = ["-" if part is None else str(part) for part in parts]
        return ":".join([self.key_prefix, namespace] + rendered)

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        if self.redis:
            try:
                value = await self.redis.get(key)
                if value:
                    return json.loads(value)
            except Exception as e:
                logger.warning(f"Redis get error: {e}")

        entry = self._memory.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if datetime.now() >= expires_at:
            del self._memory[key]
            return None
        self._memory.move_to_end(key)
        return value

    async def set(self, key: str, value: Any, ttl: int = 3600):
        """Set value in cache with TTL in seconds."""
        if ttl <= 0:
            return

        if self.redis:
            try:
                await self.redis.setex(key, ttl, json.dumps(value, default=str))
                return
            except Exception as e:
                logger.warning(f"Redis set error: {e}")

        self._memory[key] = (value, datetime.now() + timedelta(seconds=ttl))
        self._memory.move_to_end(key)
        while len(self._memory) > self.max_memory_items:
            self._memory.popitem(last=False)

    async def delete(self, key: str):
        """Delete value from cache."""
        if self.redis:
            try:
                await self.redis.delete(key)
            except Exception as e:
                logger.warning(f"Redis delete error: {e}")
        self._memory.pop(key, None)

    def __len__(self) -> int:
        return len(self._memory)
