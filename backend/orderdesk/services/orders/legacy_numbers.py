"""Bootstrap value for streams numbered before counters existed.

Only used when a stream has no counter row yet. Once every stream has a
counter this module (and its single call site in SequenceAllocator) can be
removed.
"""

import re

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from orderdesk.models.enums import OrderStream
from orderdesk.models.order import Order

logger = structlog.get_logger(__name__)

_LEADING_DIGITS = re.compile(r"(\d+)")


def parse_order_number(value: str | None) -> int:
    """Extract the first run of digits from a free-text order number ("#0042" -> 42)."""
    if not value:
        return 0
    match = _LEADING_DIGITS.search(str(value))
    return int(match.group(1)) if match else 0


async def legacy_last_number(session: AsyncSession, stream: OrderStream) -> int:
    """Highest order number already present in the stream's records (0 if none)."""
    statement = select(Order.order_number).where(
        Order.stream == stream,
        Order.order_number.is_not(None),  # type: ignore[union-attr]
    )
    result = await session.execute(statement)
    highest = max((parse_order_number(value) for value in result.scalars()), default=0)
    logger.info("Derived counter bootstrap from existing orders", stream=stream, last_number=highest)
    return highest
