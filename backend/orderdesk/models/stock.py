"""Stock item database model."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel
from ulid import ULID

from orderdesk.models.types import ULIDType


class StockItem(SQLModel, table=True):
    """Inventory line watched by the low-stock alert."""

    __tablename__ = "stock_items"

    id: str = Field(
        default_factory=lambda: str(ULID()),
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    name: str = Field(default="Unnamed", index=True)
    category: str = ""
    sub_category: str = ""
    quantity: float = 0.0
    threshold: float = 0.0  # 0 disables low-stock alerts
    notes: str = ""
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
