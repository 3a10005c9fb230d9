"""Recovery of trigger work lost between commit and message enqueue.

Trigger messages are sent after the database commit. If the broker is down at
that moment the message is gone, so on worker start every registered task
gets a chance to find its unfinished records and re-send their messages.
"""

import asyncio

import dramatiq
import structlog

from orderdesk.tasks.utils.decorators import get_recoverable_tasks
from orderdesk.tasks.utils.task_db import task_db_session
from orderdesk.utils.redis_lock import LockUnavailable, RedisLock

logger = structlog.get_logger(__name__)

RECOVERY_LOCK_KEY = "orderdesk:recovery"
RECOVERY_LOCK_TTL = 300  # seconds
# An item re-sent within this window is not re-sent again
RECOVERY_DEDUP_TTL = 300  # seconds


@dramatiq.actor(max_retries=0, queue_name="default")
def run_recovery() -> None:
    """Re-send trigger messages for records whose handler never ran.

    Queued by `orderdesk worker` on start; only one run at a time across all
    workers.
    """
    try:
        with RedisLock(RECOVERY_LOCK_KEY, ttl=RECOVERY_LOCK_TTL, raise_exc=True):
            resent = asyncio.run(_recover_pending())
    except LockUnavailable:
        logger.debug("Recovery already running elsewhere")
        return
    logger.info("Trigger recovery finished", resent=resent)


async def _recover_pending() -> int:
    """Re-send messages for every registered task, deduplicated per item.

    Returns:
        Total number of re-sent messages.
    """
    total_recovered = 0

    async with task_db_session() as session:
        for task_fn, get_pending_fn, dedup_field in get_recoverable_tasks():
            messages = await get_pending_fn(session)
            for message in messages:
                # auto_release=False: the key stays until TTL expires (deduplication window)
                with RedisLock(
                    f"recovery:{task_fn.actor_name}:{message[dedup_field]}",
                    ttl=RECOVERY_DEDUP_TTL,
                    auto_release=False,
                ) as acquired:
                    if not acquired:
                        continue
                    logger.info("Recovering task", task=task_fn.actor_name, **{dedup_field: message[dedup_field]})
                    task_fn.send(message)
                    total_recovered += 1

    return total_recovered
