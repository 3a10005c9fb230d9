"""Bounded polling for the asynchronously assigned order number."""

from collections.abc import Awaitable, Callable

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_fixed

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_INTERVAL = 0.25  # seconds

NumberFetcher = Callable[[], Awaitable[str | None]]


def _no_number(value: str | None) -> bool:
    return not value


def _give_up(retry_state: RetryCallState) -> None:
    logger.info("Order number not assigned yet, giving up", attempts=retry_state.attempt_number)
    return None


async def wait_for_number(
    fetch: NumberFetcher,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval: float = DEFAULT_INTERVAL,
) -> str | None:
    """Poll ``fetch`` until it returns a non-empty order number.

    Calls ``fetch`` at most ``max_attempts`` times with ``interval`` seconds
    between calls (no sleep after the last one). Returns the first non-empty
    value, or None when attempts run out; running out is the normal
    "number will follow by email" outcome, not an error. Exceptions raised
    by ``fetch`` propagate immediately.

    Usage:
        number = await wait_for_number(lambda: client.fetch_order_number(stream, order_id))
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(_no_number),
        retry_error_callback=_give_up,
    )
    number: str | None = await retrying(fetch)
    return number or None
