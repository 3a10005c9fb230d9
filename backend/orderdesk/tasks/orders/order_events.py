"""Order trigger handlers: number allocation and order emails."""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

import dramatiq
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config import get_settings
from orderdesk.models.events import OrderCreatedEvent, OrderUpdatedEvent
from orderdesk.services.events.dispatcher import EventDispatcher
from orderdesk.services.external.resend import ResendService
from orderdesk.services.orders.order_service import OrderService
from orderdesk.tasks.utils.decorators import task_recover
from orderdesk.tasks.utils.retry import MAX_BACKOFF_MS, MIN_BACKOFF_MS, retry_transient
from orderdesk.tasks.utils.task_db import task_db_session

logger = structlog.get_logger(__name__)


async def find_unnumbered_orders(session: AsyncSession) -> list[dict[str, Any]]:
    """Created-event messages for orders that never got a number."""
    grace = timedelta(seconds=get_settings().recovery_grace_seconds)
    orders = await OrderService(session).list_unnumbered(older_than=datetime.now(UTC) - grace)
    return [OrderCreatedEvent(stream=order.stream, order_id=order.id).model_dump(mode="json") for order in orders]


@task_recover(find_unnumbered_orders, dedup_field="order_id")
@dramatiq.actor(
    queue_name="notifications",
    retry_when=retry_transient,
    min_backoff=MIN_BACKOFF_MS,
    max_backoff=MAX_BACKOFF_MS,
)
def handle_order_created(message: dict[str, Any]) -> None:
    """Assign the order number and send the new-order emails.

    Safe to run more than once for the same order: the number is assigned
    only once. A retry after a partial send may repeat an email.
    """
    event = OrderCreatedEvent.model_validate(message)
    asyncio.run(_handle_order_created(event))


async def _handle_order_created(event: OrderCreatedEvent) -> None:
    settings = get_settings()
    with structlog.contextvars.bound_contextvars(
        event_id=event.event_id, stream=event.stream, order_id=event.order_id
    ):
        async with task_db_session() as session:
            dispatcher = EventDispatcher(session, ResendService(settings), settings)
            order_number = await dispatcher.on_order_created(event)
        logger.info("Order created handled", order_number=order_number)


@dramatiq.actor(
    queue_name="notifications",
    retry_when=retry_transient,
    min_backoff=MIN_BACKOFF_MS,
    max_backoff=MAX_BACKOFF_MS,
)
def handle_order_updated(message: dict[str, Any]) -> None:
    """Send status update emails for a status change."""
    event = OrderUpdatedEvent.model_validate(message)
    asyncio.run(_handle_order_updated(event))


async def _handle_order_updated(event: OrderUpdatedEvent) -> None:
    settings = get_settings()
    with structlog.contextvars.bound_contextvars(
        event_id=event.event_id, stream=event.stream, order_id=event.order_id
    ):
        async with task_db_session() as session:
            dispatcher = EventDispatcher(session, ResendService(settings), settings)
            await dispatcher.on_order_updated(event)
