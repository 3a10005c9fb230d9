"""Order database model."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Enum, Index, text
from sqlmodel import Field, SQLModel
from ulid import ULID

from orderdesk.models.enums import OrderStatus, OrderStream
from orderdesk.models.types import LineItemData, LineItemList, ULIDType


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


def _str_enum(enum_cls: type, name: str) -> Enum:
    # Stored as VARCHAR so new statuses need no enum type migration
    return Enum(
        enum_cls,
        values_callable=lambda e: [x.value for x in e],
        name=name,
        native_enum=False,
        length=32,
    )


class Order(SQLModel, table=True):
    """Customer order submitted through one of the order forms."""

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_stream_order_number", "stream", "order_number", unique=True),
        # Recovery scans for orders still waiting for a number
        Index("ix_orders_unnumbered_created_at", "created_at", postgresql_where=text("order_number IS NULL")),
    )

    id: str = Field(
        default_factory=_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    stream: OrderStream = Field(sa_column=Column(_str_enum(OrderStream, "orderstream"), nullable=False, index=True))

    # Display number "#0042", assigned asynchronously by the sequence allocator
    order_number: str | None = Field(default=None)

    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        sa_column=Column(_str_enum(OrderStatus, "orderstatus"), nullable=False),
    )

    # Customer contact
    name: str = ""
    surname: str = ""
    email: str = ""
    cellphone: str = ""
    address: str = ""

    # Fulfilment
    delivery_option: str = ""
    send_date: str = ""  # Requested send date, free text from the form
    notes: str = ""
    paid: bool = False
    tracking_link: str | None = None
    delivery_cost: float = 0.0
    line_items: list[LineItemData] = Field(
        default_factory=list,
        sa_column=Column(LineItemList, nullable=False),
    )

    dispatch_email_sent_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    created_at: datetime = Field(default_factory=_utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))

    @property
    def customer_name(self) -> str:
        full = " ".join(part for part in (self.name, self.surname) if part).strip()
        return full or "Customer"
