"""API request and response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from orderdesk.models.enums import OrderStatus, OrderStream
from orderdesk.models.order import Order
from orderdesk.models.stock import StockItem
from orderdesk.models.types import LineItemData
from orderdesk.services.notifications.formatting import calculate_totals
from orderdesk.services.notifications.notification_service import CorrectionResult, StockReport
from orderdesk.services.orders.order_service import NewOrder, OrderChanges
from orderdesk.services.stock.stock_service import StockChanges

# =============================================================================
# Orders
# =============================================================================


class OrderCreateRequest(BaseModel):
    """Public order form submission."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    surname: str = ""
    email: str = ""
    cellphone: str = ""
    address: str = ""
    delivery_option: str = Field(default="", alias="deliveryOption")
    send_date: str = Field(default="", alias="sendDate")
    notes: str = ""
    delivery_cost: float = Field(default=0.0, alias="deliveryCost")
    line_items: list[LineItemData] = Field(default_factory=list, alias="lineItems")

    def to_new_order(self) -> NewOrder:
        return NewOrder(
            name=self.name,
            surname=self.surname,
            email=self.email,
            cellphone=self.cellphone,
            address=self.address,
            delivery_option=self.delivery_option,
            send_date=self.send_date,
            notes=self.notes,
            delivery_cost=self.delivery_cost,
            line_items=self.line_items,
        )


class OrderNumberResponse(BaseModel):
    """Order id with its number, null until the allocator has run."""

    id: str
    stream: OrderStream
    order_number: str | None

    @classmethod
    def from_model(cls, order: Order) -> "OrderNumberResponse":
        return cls(id=order.id, stream=order.stream, order_number=order.order_number)


class OrderDetailResponse(BaseModel):
    """Order detail for the dashboard."""

    id: str
    stream: OrderStream
    order_number: str | None
    status: OrderStatus
    name: str
    surname: str
    email: str
    cellphone: str
    address: str
    delivery_option: str
    send_date: str
    notes: str
    paid: bool
    tracking_link: str | None
    delivery_cost: float
    line_items: list[LineItemData]
    subtotal: float
    total: float
    dispatch_email_sent_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, order: Order) -> "OrderDetailResponse":
        """Create response from Order model."""
        totals = calculate_totals(order.line_items, order.delivery_cost)
        return cls(
            id=order.id,
            stream=order.stream,
            order_number=order.order_number,
            status=order.status,
            name=order.name,
            surname=order.surname,
            email=order.email,
            cellphone=order.cellphone,
            address=order.address,
            delivery_option=order.delivery_option,
            send_date=order.send_date,
            notes=order.notes,
            paid=order.paid,
            tracking_link=order.tracking_link,
            delivery_cost=order.delivery_cost,
            line_items=order.line_items,
            subtotal=totals.subtotal,
            total=totals.total,
            dispatch_email_sent_at=order.dispatch_email_sent_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderUpdateRequest(BaseModel):
    """Dashboard edit; omitted fields are left unchanged."""

    status: OrderStatus | None = None
    tracking_link: str | None = None
    paid: bool | None = None
    send_date: str | None = None
    delivery_cost: float | None = None

    def to_changes(self) -> OrderChanges:
        return OrderChanges(**self.model_dump())


class DeliveryResponse(BaseModel):
    """Result of a send; ``id`` is the mail transport's message id, if any."""

    id: str | None


# =============================================================================
# Stock
# =============================================================================


class StockItemRequest(BaseModel):
    name: str | None = None
    category: str | None = None
    sub_category: str | None = None
    quantity: float | None = None
    threshold: float | None = None
    notes: str | None = None

    def to_changes(self) -> StockChanges:
        return StockChanges(**self.model_dump())


class StockItemResponse(BaseModel):
    id: str
    name: str
    category: str
    sub_category: str
    quantity: float
    threshold: float
    notes: str
    updated_at: datetime

    @classmethod
    def from_model(cls, item: StockItem) -> "StockItemResponse":
        return cls(
            id=item.id,
            name=item.name,
            category=item.category,
            sub_category=item.sub_category,
            quantity=item.quantity,
            threshold=item.threshold,
            notes=item.notes,
            updated_at=item.updated_at,
        )


class StockSummaryRequest(BaseModel):
    report: StockReport = StockReport.TEST


# =============================================================================
# Notifications
# =============================================================================


class SendTestEmailRequest(BaseModel):
    to: list[str] = Field(min_length=1)
    subject: str | None = None
    message: str | None = None


class CorrectionEmailsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_ids: list[str] = Field(min_length=1, alias="orderIds")
    subject: str | None = None
    message: str | None = None


class CorrectionDeliveryResponse(BaseModel):
    id: str
    email: str
    result: str | None


class CorrectionEmailsResponse(BaseModel):
    sent: int
    results: list[CorrectionDeliveryResponse]

    @classmethod
    def from_result(cls, result: CorrectionResult) -> "CorrectionEmailsResponse":
        return cls(
            sent=result.sent,
            results=[
                CorrectionDeliveryResponse(id=d.order_id, email=d.email, result=d.delivery_id)
                for d in result.deliveries
            ],
        )
