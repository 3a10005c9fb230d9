"""Shared Redis client for locks (the Dramatiq broker keeps its own pool)."""

from functools import lru_cache

import redis

from orderdesk.config import settings


@lru_cache(maxsize=1)
def get_redis() -> redis.Redis:
    """Process-wide client, created on first use."""
    return redis.from_url(settings.redis_url)  # type: ignore[no-untyped-call]
