"""Sliding-window rate limiters keyed by client address."""

import asyncio
import time
import uuid
from typing import Protocol

import redis.asyncio as redis
from loguru import logger

from mindspace.core.config import settings


class RateLimiter(Protocol):
    max_requests: int
    window_seconds: int

    async def hit(self, key: str) -> tuple[bool, int]: ...


class InMemoryRateLimiter:
    """Process-local limiter; counts are lost on restart and not shared."""

    clock = staticmethod(time.monotonic)

    def __init__(self, max_requests: int = 100, window_seconds: int = 900) -> None:
        """
        Initialize rate limiter.

        Args:
            max_requests: Maximum number of requests allowed in window
            window_seconds: Time window in seconds
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: dict[str, list[float]] = {}
        self._lock = asyncio.Lock()
        self._last_sweep: float | None = None

    def _recent(self, key: str, cutoff: float) -> list[float]:
        history = [t for t in self._requests.get(key, ()) if t > cutoff]
        if history:
            self._requests[key] = history
        else:
            self._requests.pop(key, None)
        return history

    def _sweep(self, now: float) -> None:
        """Forget clients with no requests left in the window."""
        cutoff = now - self.window_seconds
        for key in list(self._requests):
            self._recent(key, cutoff)
        self._last_sweep = now

    async def hit(self, key: str) -> tuple[bool, int]:
        """
        Count a request from ``key`` if it fits in the window.

        Checking and recording happen under one lock, so concurrent
        requests cannot overshoot ``max_requests``.

        Returns:
            tuple: (is_allowed, seconds_until_reset)
        """
        async with self._lock:
            now = self.clock()
            if self._last_sweep is None or now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            history = self._recent(key, now - self.window_seconds)
            if len(history) >= self.max_requests:
                retry_after = int(history[0] + self.window_seconds - now) + 1
                return (False, max(0, retry_after))

            self._requests[key] = [*history, now]
            return (True, 0)


class RedisRateLimiter:
    """
    Limiter backed by one Redis sorted set per client.

    Shared between worker processes; member scores are request times.
    """

    KEY_PREFIX = "ratelimit"

    def __init__(
        self,
        redis_url: str,
        max_requests: int = 100,
        window_seconds: int = 900,
    ) -> None:
        self.redis_url = redis_url
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._redis: redis.Redis | None = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:{key}"

    async def hit(self, key: str) -> tuple[bool, int]:
        """Add the request, then withdraw it if the window was already full."""
        if not self._redis:
            await self.connect()

        now = time.time()
        redis_key = self._key(key)
        member = f"{now}:{uuid.uuid4().hex}"

        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(redis_key, 0, now - self.window_seconds)
            pipe.zadd(redis_key, {member: now})
            pipe.zcard(redis_key)
            pipe.zrange(redis_key, 0, 0, withscores=True)
            pipe.expire(redis_key, self.window_seconds)
            _, _, count, oldest, _ = await pipe.execute()

        if count <= self.max_requests:
            return (True, 0)

        await self._redis.zrem(redis_key, member)
        if oldest:
            retry_after = int(oldest[0][1] + self.window_seconds - now) + 1
            return (False, max(0, retry_after))
        return (False, self.window_seconds)


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the limiter configured in settings."""
    global _rate_limiter
    if _rate_limiter is None:
        if settings.rate_limit_backend == "redis":
            _rate_limiter = RedisRateLimiter(
                redis_url=settings.redis_url,
                max_requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        else:
            _rate_limiter = InMemoryRateLimiter(
                max_requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        logger.info(
            f"Rate limiter: {settings.rate_limit_backend}, "
            f"{settings.rate_limit_max_requests} requests / "
            f"{settings.rate_limit_window_seconds}s"
        )
    return _rate_limiter


async def close_rate_limiter() -> None:
    """Release the limiter's connections, if any."""
    global _rate_limiter
    if isinstance(_rate_limiter, RedisRateLimiter):
        await _rate_limiter.disconnect()
    _rate_limiter = None
