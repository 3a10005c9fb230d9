"""Staff-initiated notifications: dispatch notices, corrections, stock reports, test emails."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config import Settings
from orderdesk.models.enums import OrderStream
from orderdesk.services.events.dispatcher import DeliveryClient, admin_recipients
from orderdesk.services.exceptions import ValidationError
from orderdesk.services.notifications.composer import NotificationComposer
from orderdesk.services.orders.exceptions import OrderNotFound
from orderdesk.services.orders.order_service import OrderService
from orderdesk.services.stock.stock_service import StockService

logger = structlog.get_logger(__name__)


class StockReport(StrEnum):
    """Scheduled stock summaries (run from cron via the CLI)."""

    MORNING = "morning"
    EVENING = "evening"
    DAILY = "daily"
    TEST = "test"

    @property
    def title(self) -> str:
        return STOCK_REPORT_TITLES[self]

    @property
    def include_all(self) -> bool:
        # Morning and evening reports list low stock only
        return self in (StockReport.DAILY, StockReport.TEST)


STOCK_REPORT_TITLES: dict[StockReport, str] = {
    StockReport.MORNING: "Morning stock summary",
    StockReport.EVENING: "Evening stock summary",
    StockReport.DAILY: "Daily stock summary",
    StockReport.TEST: "Stock summary test",
}


@dataclass(frozen=True)
class DispatchResult:
    delivery_id: str | None


@dataclass(frozen=True)
class CorrectionDelivery:
    order_id: str
    email: str
    delivery_id: str | None


@dataclass(frozen=True)
class CorrectionResult:
    deliveries: list[CorrectionDelivery]

    @property
    def sent(self) -> int:
        return len(self.deliveries)


class NotificationService:
    """Notifications sent on explicit request rather than from a trigger."""

    def __init__(self, session: AsyncSession, delivery: DeliveryClient, settings: Settings):
        self.session = session
        self.delivery = delivery
        self.settings = settings
        self.composer = NotificationComposer(settings)

    async def request_dispatch_notification(self, stream: OrderStream, order_id: str) -> DispatchResult:
        """Email the customer that their order is being prepared for dispatch.

        Raises:
            OrderNotFound: If the order does not exist
            MissingDispatchDetails: If the order has no email or send date (nothing is sent)
        """
        order = await OrderService(self.session).get_order(stream, order_id)
        payload = self.composer.dispatch_requested(order)

        delivery_id = await self.delivery.send_payload(payload)

        order.dispatch_email_sent_at = datetime.now(UTC)
        await self.session.commit()

        logger.info("Dispatch notification sent", stream=stream, order_id=order_id, delivery_id=delivery_id)
        return DispatchResult(delivery_id=delivery_id)

    async def send_correction_emails(
        self,
        stream: OrderStream,
        order_ids: list[str],
        subject: str | None = None,
        message: str | None = None,
    ) -> CorrectionResult:
        """Send a correction notice to the customer of each listed order.

        Unknown orders and orders without an email address are skipped.

        Raises:
            ValidationError: If no order ids are given
        """
        if not order_ids:
            raise ValidationError("At least one order id is required.")

        orders = OrderService(self.session)
        deliveries: list[CorrectionDelivery] = []
        for order_id in order_ids:
            try:
                order = await orders.get_order(stream, order_id)
            except OrderNotFound:
                logger.warning("Skipping correction for unknown order", stream=stream, order_id=order_id)
                continue
            payloads = self.composer.correction_notice(order, subject=subject, message=message)
            if not payloads:
                logger.info("Skipping correction for order without email", stream=stream, order_id=order_id)
                continue
            payload = payloads[0]
            delivery_id = await self.delivery.send_payload(payload)
            deliveries.append(
                CorrectionDelivery(order_id=order_id, email=payload.recipients[0], delivery_id=delivery_id)
            )

        logger.info("Correction emails sent", stream=stream, requested=len(order_ids), sent=len(deliveries))
        return CorrectionResult(deliveries=deliveries)

    async def send_stock_report(self, report: StockReport) -> str | None:
        return await self.send_stock_summary(title=report.title, include_all=report.include_all)

    async def send_stock_summary(self, *, title: str, include_all: bool) -> str | None:
        """Send a stock report to the admin recipients.

        Returns:
            Delivery id, or None if there are no admin recipients
        """
        items = await StockService(self.session).list_items()
        payloads = self.composer.stock_summary(
            items, admin_recipients(self.settings), title=title, include_all=include_all
        )
        if not payloads:
            logger.info("No admin recipients for stock summary", title=title)
            return None
        delivery_id = await self.delivery.send_payload(payloads[0])
        logger.info("Stock summary sent", title=title, items=len(items), delivery_id=delivery_id)
        return delivery_id

    async def send_test_email(
        self,
        recipients: list[str],
        subject: str | None = None,
        message: str | None = None,
    ) -> str | None:
        to = [address.strip() for address in recipients if address and address.strip()]
        if not to:
            raise ValidationError("At least one recipient is required.")
        payload = self.composer.test_email(to, subject=subject, message=message)
        return await self.delivery.send_payload(payload)
