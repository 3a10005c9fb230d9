"""Stock trigger handler and scheduled stock summaries."""

import asyncio
from typing import Any

import dramatiq
import structlog

from orderdesk.config import get_settings
from orderdesk.models.events import StockWrittenEvent
from orderdesk.services.events.dispatcher import EventDispatcher
from orderdesk.services.external.resend import ResendService
from orderdesk.services.notifications.notification_service import NotificationService, StockReport
from orderdesk.tasks.utils.retry import MAX_BACKOFF_MS, MIN_BACKOFF_MS, retry_transient
from orderdesk.tasks.utils.task_db import task_db_session

logger = structlog.get_logger(__name__)


@dramatiq.actor(
    queue_name="notifications",
    retry_when=retry_transient,
    min_backoff=MIN_BACKOFF_MS,
    max_backoff=MAX_BACKOFF_MS,
)
def handle_stock_written(message: dict[str, Any]) -> None:
    """Send a low-stock alert if this write took the item to or below its threshold."""
    event = StockWrittenEvent.model_validate(message)
    asyncio.run(_handle_stock_written(event))


async def _handle_stock_written(event: StockWrittenEvent) -> None:
    settings = get_settings()
    with structlog.contextvars.bound_contextvars(event_id=event.event_id, item_id=event.after.item_id):
        async with task_db_session() as session:
            dispatcher = EventDispatcher(session, ResendService(settings), settings)
            await dispatcher.on_stock_written(event)


@dramatiq.actor(
    queue_name="notifications",
    retry_when=retry_transient,
    min_backoff=MIN_BACKOFF_MS,
    max_backoff=MAX_BACKOFF_MS,
)
def send_stock_summary(report: str) -> None:
    """Email one of the scheduled stock reports to the admins."""
    asyncio.run(_send_stock_summary(StockReport(report)))


async def _send_stock_summary(report: StockReport) -> None:
    settings = get_settings()
    async with task_db_session() as session:
        service = NotificationService(session, ResendService(settings), settings)
        delivery_id = await service.send_stock_report(report)
    logger.info("Stock summary task done", report=report, delivery_id=delivery_id)
