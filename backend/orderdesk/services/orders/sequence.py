"""Race-condition-safe order number allocation per order stream."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.sql.dml import Insert

from orderdesk.models.counter import StreamCounter
from orderdesk.models.enums import OrderStream
from orderdesk.models.order import Order
from orderdesk.services.orders.legacy_numbers import legacy_last_number

logger = structlog.get_logger(__name__)

ORDER_NUMBER_PREFIX = "#"
ORDER_NUMBER_WIDTH = 4


def format_order_number(value: int) -> str:
    """Render a counter value for display: 42 -> "#0042"."""
    return f"{ORDER_NUMBER_PREFIX}{value:0{ORDER_NUMBER_WIDTH}d}"


class SequenceAllocator:
    """Assigns display order numbers from a per-stream counter row.

    Allocation happens in two steps:

    1. Reserve: one transaction increments the stream's counter row with
       UPDATE ... RETURNING. The row lock serializes concurrent allocations,
       so every committed value is unique and values commit in increasing
       order. A missing row is created from the legacy scan first.
    2. Stamp: a separate write sets ``order_number`` on the order, only if it
       is still empty.

    If the stamp never happens (crash) or loses to a duplicate invocation,
    the reserved value stays unused. Numbers may have gaps, never duplicates.

    Usage:
        allocator = SequenceAllocator(session)
        number = await allocator.allocate(OrderStream.EGG_ORDERS, order)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def allocate(self, stream: OrderStream, order: Order) -> str:
        """Return the order's number, assigning the next one if it has none."""
        if order.order_number:
            logger.debug("Order already numbered", order_id=order.id, order_number=order.order_number)
            return order.order_number

        next_value = await self._reserve_next(stream)
        formatted = format_order_number(next_value)

        stamped = await self._stamp(order, formatted)
        if not stamped:
            await self.session.refresh(order)
            logger.warning(
                "Order numbered by a concurrent invocation, reserved number left unused",
                stream=stream,
                order_id=order.id,
                order_number=order.order_number,
                unused_number=formatted,
            )
            assert order.order_number is not None
            return order.order_number

        logger.info("Allocated order number", stream=stream, order_id=order.id, order_number=formatted)
        return formatted

    async def _reserve_next(self, stream: OrderStream) -> int:
        """Increment the stream counter in its own transaction and return the new value."""
        try:
            value = await self._increment(stream)
            if value is None:
                bootstrap = await legacy_last_number(self.session, stream)
                await self.session.execute(self._insert_counter_if_absent(stream, bootstrap))
                value = await self._increment(stream)
                assert value is not None, "Counter row must exist after insert"
            await self.session.commit()
        except BaseException:
            await self.session.rollback()
            raise
        return value

    async def _increment(self, stream: OrderStream) -> int | None:
        statement = (
            update(StreamCounter)
            .where(StreamCounter.stream == stream.value)  # type: ignore[arg-type]
            .values(
                last_number=StreamCounter.last_number + 1,
                updated_at=datetime.now(UTC),
            )
            .returning(StreamCounter.last_number)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    def _insert_counter_if_absent(self, stream: OrderStream, last_number: int) -> Insert:
        dialect = self.session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        return (
            insert(StreamCounter)
            .values(stream=stream.value, last_number=last_number, updated_at=datetime.now(UTC))
            .on_conflict_do_nothing(index_elements=["stream"])
        )

    async def _stamp(self, order: Order, formatted: str) -> bool:
        """Write the number onto the order unless it already has one."""
        statement = (
            update(Order)
            .where(Order.id == order.id, Order.order_number.is_(None))  # type: ignore[arg-type,union-attr]
            .values(order_number=formatted, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(statement)
            await self.session.commit()
        except BaseException:
            await self.session.rollback()
            raise

        if result.rowcount == 0:  # type: ignore[attr-defined]
            return False
        # Mirror the Core write on the loaded instance without marking it dirty
        set_committed_value(order, "order_number", formatted)
        return True
