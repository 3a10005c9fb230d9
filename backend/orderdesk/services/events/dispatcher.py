"""Trigger handlers: record lifecycle events in, allocation and notifications out."""

from typing import Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config import Settings
from orderdesk.models.enums import SILENT_STATUSES
from orderdesk.models.events import OrderCreatedEvent, OrderUpdatedEvent, StockWrittenEvent
from orderdesk.models.order import Order
from orderdesk.services.exceptions import DeliveryRejectedError
from orderdesk.services.notifications.composer import NotificationComposer, NotificationPayload
from orderdesk.services.notifications.recipients import resolve_recipients
from orderdesk.services.orders.sequence import SequenceAllocator
from orderdesk.services.stock.threshold import detect_threshold_crossing

logger = structlog.get_logger(__name__)


class DeliveryClient(Protocol):
    async def send_payload(self, payload: NotificationPayload) -> str | None: ...


def admin_recipients(settings: Settings) -> list[str]:
    """Resolve the configured admin alert recipients."""
    return resolve_recipients(settings.admin_email, settings.admin_email_exclusions, settings.admin_email_fallbacks)


class EventDispatcher:
    """Runs the work behind each trigger event.

    Handlers may run more than once for the same event and concurrently with
    each other. Number allocation is idempotent; a repeated run may send the
    same email twice, which is accepted. Transient and configuration errors
    propagate so the task's retry policy can decide about re-running the
    whole handler; a rejected email only skips that one email.
    """

    def __init__(self, session: AsyncSession, delivery: DeliveryClient, settings: Settings):
        self.session = session
        self.delivery = delivery
        self.settings = settings
        self.composer = NotificationComposer(settings)

    async def _deliver(self, payloads: list[NotificationPayload]) -> list[str | None]:
        """Send each payload in turn.

        A rejected payload (e.g. a mistyped customer address) is logged and
        skipped so the remaining ones still go out. Transient and
        configuration errors propagate and fail the whole handler.
        """
        results: list[str | None] = []
        for payload in payloads:
            try:
                message_id = await self.delivery.send_payload(payload)
            except DeliveryRejectedError as e:
                logger.error(
                    "Notification rejected by mail transport",
                    kind=payload.kind,
                    audience=payload.audience,
                    status_code=e.status_code,
                    error=e.detail,
                )
                results.append(None)
                continue
            logger.info(
                "Notification delivered",
                kind=payload.kind,
                audience=payload.audience,
                message_id=message_id,
            )
            results.append(message_id)
        return results

    async def on_order_created(self, event: OrderCreatedEvent) -> str | None:
        """Allocate the order number, then send the confirmation and admin alert.

        Returns:
            The order's number, or None if the order no longer exists
        """
        order = await self.session.get(Order, event.order_id)
        if order is None:
            logger.warning("Order not found for created event", order_id=event.order_id)
            return None

        if order.stream != event.stream:
            logger.warning(
                "Created event stream differs from stored order",
                event_stream=event.stream,
                stream=order.stream,
            )
        order_number = await SequenceAllocator(self.session).allocate(order.stream, order)
        payloads = self.composer.order_created(order, admin_recipients(self.settings))
        await self._deliver(payloads)
        return order_number

    async def on_order_updated(self, event: OrderUpdatedEvent) -> None:
        if event.previous_status == event.status:
            return
        if event.status in SILENT_STATUSES:
            logger.info("Status notification suppressed", order_id=event.order_id, status=event.status)
            return

        order = await self.session.get(Order, event.order_id)
        if order is None:
            logger.warning("Order not found for updated event", order_id=event.order_id)
            return

        payloads = self.composer.order_status_changed(
            order,
            event.previous_status,
            admin_recipients(self.settings),
            status=event.status,
        )
        await self._deliver(payloads)

    async def on_stock_written(self, event: StockWrittenEvent) -> None:
        signal = detect_threshold_crossing(event.before, event.after)
        if signal is None:
            return

        logger.info(
            "Stock dropped to threshold",
            item_id=signal.item_id,
            quantity=signal.quantity,
            threshold=signal.threshold,
        )
        await self._deliver(self.composer.stock_threshold_crossed(signal, admin_recipients(self.settings)))
