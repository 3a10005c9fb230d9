"""Stock item service."""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from ulid import ULID

from orderdesk.models.stock import StockItem
from orderdesk.services.exceptions import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class StockItemNotFound(NotFoundError):
    """Stock item not found."""

    pass


@dataclass
class StockChanges:
    """Inventory edits; None means "leave unchanged"."""

    name: str | None = None
    category: str | None = None
    sub_category: str | None = None
    quantity: float | None = None
    threshold: float | None = None
    notes: str | None = None


class StockService:
    """Service for stock item writes and reporting reads.

    Writes that touch quantity, threshold or name emit a StockWrittenEvent
    on commit, which drives the low-stock alert.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_item(self, changes: StockChanges) -> StockItem:
        if not changes.name or not changes.name.strip():
            raise ValidationError("Stock item name is required.")
        item = StockItem(
            name=changes.name.strip(),
            category=changes.category or "",
            sub_category=changes.sub_category or "",
            quantity=changes.quantity or 0.0,
            threshold=changes.threshold or 0.0,
            notes=changes.notes or "",
        )
        self.session.add(item)
        await self.session.commit()
        logger.info("Stock item created", item_id=item.id, name=item.name, quantity=item.quantity)
        return item

    async def get_item(self, item_id: str) -> StockItem:
        try:
            ULID.from_str(item_id)
        except ValueError:
            raise StockItemNotFound(f"Stock item {item_id} not found") from None
        item = await self.session.get(StockItem, item_id)
        if item is None:
            raise StockItemNotFound(f"Stock item {item_id} not found")
        return item

    async def update_item(self, item_id: str, changes: StockChanges) -> StockItem:
        item = await self.get_item(item_id)
        for key in ("name", "category", "sub_category", "quantity", "threshold", "notes"):
            value = getattr(changes, key)
            if value is not None:
                setattr(item, key, value)
        item.updated_at = datetime.now(UTC)
        await self.session.commit()
        logger.info("Stock item updated", item_id=item.id, quantity=item.quantity, threshold=item.threshold)
        return item

    async def list_items(self) -> list[StockItem]:
        """All stock items ordered by name (for summary reports)."""
        result = await self.session.execute(select(StockItem).order_by(StockItem.name))  # type: ignore[arg-type]
        return list(result.scalars().all())
