"""Task decorators for Dramatiq actors."""

from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

# Returns the messages (as dicts) that should be re-sent to the task
RecoveryFn = Callable[[AsyncSession], Awaitable[list[dict[str, Any]]]]

# Registry of tasks with recovery functions
_recoverable_tasks: list[tuple[Any, RecoveryFn, str]] = []


def task_recover(get_pending_fn: RecoveryFn, *, dedup_field: str) -> Callable[[Any], Any]:
    """Register a task for re-dispatch when a worker starts.

    ``get_pending_fn`` finds work whose trigger message was likely lost
    and returns the messages to send again. ``dedup_field`` names the
    message key used to avoid re-sending the same item twice within the
    recovery dedup window.

    Usage:
        @task_recover(find_unnumbered_orders, dedup_field="order_id")
        @dramatiq.actor(...)
        def handle_order_created(message: dict) -> None: ...
    """

    def decorator(fn: Any) -> Any:
        _recoverable_tasks.append((fn, get_pending_fn, dedup_field))
        return fn

    return decorator


def get_recoverable_tasks() -> list[tuple[Any, RecoveryFn, str]]:
    """Return all registered recoverable tasks."""
    return _recoverable_tasks
