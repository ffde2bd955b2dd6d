"""
Redis Adapter for Rate Limiting.

Implements the RateLimitStorePort using Redis with a fixed window algorithm,
so counters are shared by every instance of the application.
"""

import logging
import re
import time
from typing import Optional

import redis.asyncio as redis

from opportunity_explorer.domain.models import RateLimitCounter
from opportunity_explorer.domain.policies import RateLimitPolicy
from opportunity_explorer.interfaces.rate_limiter import RateLimitStorePort

logger = logging.getLogger(__name__)

# Characters with meaning in SCAN MATCH patterns
GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(value: str) -> str:
    """Escape a literal for use inside a Redis glob pattern."""
    return GLOB_SPECIAL.sub(r"\\\1", value)


# KEYS[1] = counter key, ARGV[1] = request limit, ARGV[2] = window in ms.
# Returns 1 when blocked, 0 otherwise.
CHECK_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
    redis.call('SET', KEYS[1], 1, 'PX', ARGV[2])
    return 0
end
if tonumber(current) >= tonumber(ARGV[1]) then
    return 1
end
redis.call('INCR', KEYS[1])
return 0
"""


class RedisRateLimitStore(RateLimitStorePort):
    """
    Rate limit store backed by Redis string counters.

    Each counter lives under ``<key_prefix><subject>:<policy>`` and expires
    with its window. The check runs as a single Lua script so concurrent
    requests for one key cannot overshoot the limit.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: str = "ratelimit:",
    ):
        """
        Initialize the Redis rate limit store.

        Args:
            redis_url: Redis connection URL
            key_prefix: Namespace for this store's keys; IP and user stores
                must use different prefixes
        """
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._redis: Optional[redis.Redis] = None
        self._check_script = None

    async def _get_client(self) -> redis.Redis:
        """Get or create Redis client connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            self._check_script = self._redis.register_script(CHECK_SCRIPT)
        return self._redis

    def _get_key(self, subject_key: str, policy: RateLimitPolicy) -> str:
        return f"{self._key_prefix}{self.counter_key(subject_key, policy)}"

    async def check(self, subject_key: str, policy: RateLimitPolicy) -> bool:
        await self._get_client()
        key = self._get_key(subject_key, policy)
        blocked = await self._check_script(
            keys=[key],
            args=[policy.requests, policy.window_seconds * 1000],
        )
        if blocked:
            logger.debug("blocked key=%s limit=%d", key, policy.requests)
        return bool(blocked)

    async def get_counter(
        self,
        subject_key: str,
        policy: RateLimitPolicy,
    ) -> Optional[RateLimitCounter]:
        client = await self._get_client()
        key = self._get_key(subject_key, policy)

        pipe = client.pipeline()
        pipe.get(key)
        pipe.pttl(key)
        count, ttl_ms = await pipe.execute()

        if count is None:
            return None
        return RateLimitCounter(
            count=int(count),
            reset_at=time.monotonic() + max(ttl_ms, 0) / 1000,
        )

    async def reset(self, subject_key: Optional[str] = None) -> None:
        client = await self._get_client()
        prefix = escape_glob(self._key_prefix)
        pattern = (
            f"{prefix}{escape_glob(subject_key)}:*"
            if subject_key is not None
            else f"{prefix}*"
        )
        keys = [key async for key in client.scan_iter(match=pattern)]
        if keys:
            await client.delete(*keys)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.close()
            self._redis = None
            self._check_script = None
