"""Per-stream order number counter."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel


class StreamCounter(SQLModel, table=True):
    """Last order number handed out for one order stream.

    Only SequenceAllocator writes this row, always with a row-locking
    UPDATE ... RETURNING so concurrent allocations serialize on it.
    """

    __tablename__ = "order_counters"

    stream: str = Field(sa_column=Column(String(32), primary_key=True))
    last_number: int = Field(default=0)
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
