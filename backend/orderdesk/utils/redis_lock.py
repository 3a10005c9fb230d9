"""Redis SET NX locks for worker coordination."""

from collections.abc import Generator
from contextlib import contextmanager

import redis

from orderdesk.utils.redis import get_redis


class LockUnavailable(Exception):
    """Lock is held elsewhere and the caller asked to be told."""

    pass


@contextmanager
def RedisLock(
    key: str,
    ttl: int = 60,
    *,
    auto_release: bool = True,
    raise_exc: bool = False,
    client: redis.Redis | None = None,
) -> Generator[bool]:
    """Hold ``RedisLock:<key>`` for the duration of the block.

    Yields whether the lock was acquired, so callers can skip their work:

        with RedisLock("recovery", ttl=300) as acquired:
            if acquired:
                recover()

    With ``raise_exc=True`` a held lock raises LockUnavailable instead. With
    ``auto_release=False`` the key is left to expire, which turns the lock
    into a dedup window (e.g. "re-sent this order in the last 5 minutes").
    """
    conn = client or get_redis()
    full_key = f"RedisLock:{key}"
    acquired = bool(conn.set(full_key, "1", nx=True, ex=ttl))

    if not acquired and raise_exc:
        raise LockUnavailable(f"Could not acquire lock: {full_key}")

    try:
        yield acquired
    finally:
        if acquired and auto_release:
            conn.delete(full_key)
