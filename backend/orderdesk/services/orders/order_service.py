"""Order management service.

This service handles order intake and dashboard edits. It never sends mail
itself: committed changes surface as trigger events (see TriggerSession) and
the notification work happens in the Dramatiq handlers.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from ulid import ULID

from orderdesk.models.enums import OrderStatus, OrderStream
from orderdesk.models.order import Order
from orderdesk.models.types import LineItemData
from orderdesk.services.orders.exceptions import OrderNotFound

logger = structlog.get_logger(__name__)


@dataclass
class NewOrder:
    """Fields captured by the public order form."""

    name: str
    surname: str = ""
    email: str = ""
    cellphone: str = ""
    address: str = ""
    delivery_option: str = ""
    send_date: str = ""
    notes: str = ""
    delivery_cost: float = 0.0
    line_items: list[LineItemData] | None = None


@dataclass
class OrderChanges:
    """Dashboard edits; None means "leave unchanged"."""

    status: OrderStatus | None = None
    tracking_link: str | None = None
    paid: bool | None = None
    send_date: str | None = None
    delivery_cost: float | None = None


class OrderService:
    """Service for order intake and edits."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_order(self, stream: OrderStream, data: NewOrder) -> Order:
        """Persist a submitted order. The number is allocated later by the create handler."""
        order = Order(
            stream=stream,
            status=OrderStatus.PENDING,
            name=data.name.strip(),
            surname=data.surname.strip(),
            email=data.email.strip(),
            cellphone=data.cellphone.strip(),
            address=data.address.strip(),
            delivery_option=data.delivery_option,
            send_date=data.send_date,
            notes=data.notes,
            delivery_cost=data.delivery_cost,
            line_items=list(data.line_items or []),
        )
        self.session.add(order)
        await self.session.commit()

        logger.info("Order submitted", stream=stream, order_id=order.id, items=len(order.line_items))
        return order

    async def get_order(self, stream: OrderStream, order_id: str) -> Order:
        """Get an order by id within a stream."""
        try:
            ULID.from_str(order_id)
        except ValueError:
            raise OrderNotFound(stream, order_id) from None
        statement = select(Order).where(Order.id == order_id, Order.stream == stream)
        result = await self.session.execute(statement)
        order = result.scalars().first()
        if not order:
            raise OrderNotFound(stream, order_id)
        return order

    async def update_order(self, stream: OrderStream, order_id: str, changes: OrderChanges) -> Order:
        """Apply dashboard edits. A status change emits an OrderUpdatedEvent on commit."""
        order = await self.get_order(stream, order_id)
        previous_status = order.status

        if changes.status is not None:
            order.status = changes.status
        if changes.tracking_link is not None:
            order.tracking_link = changes.tracking_link.strip() or None
        if changes.paid is not None:
            order.paid = changes.paid
        if changes.send_date is not None:
            order.send_date = changes.send_date
        if changes.delivery_cost is not None:
            order.delivery_cost = changes.delivery_cost

        order.updated_at = datetime.now(UTC)
        await self.session.commit()

        if order.status != previous_status:
            logger.info(
                "Order status changed",
                stream=stream,
                order_id=order.id,
                previous_status=previous_status,
                status=order.status,
            )
        return order

    async def list_unnumbered(self, *, older_than: datetime) -> list[Order]:
        """Orders still waiting for a number, created before ``older_than``."""
        statement = (
            select(Order)
            .where(
                Order.order_number.is_(None),  # type: ignore[union-attr]
                Order.created_at < older_than,  # type: ignore[operator]
            )
            .order_by(Order.created_at)  # type: ignore[arg-type]
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())
