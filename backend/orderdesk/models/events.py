"""Record lifecycle trigger messages.

These are the values handed across the trigger boundary: emitted by
TriggerSession after a commit, serialised into Dramatiq messages and
validated again by the handler. Delivery is at-least-once, so handlers must
tolerate seeing the same event (same ``event_id``) more than once.
"""

import math
from typing import Literal

from pydantic import BaseModel, Field
from ulid import ULID

from orderdesk.models.enums import OrderStream
from orderdesk.models.stock import StockItem


def _event_id() -> str:
    return str(ULID())


class StockSnapshot(BaseModel):
    """Stock item fields the threshold watcher needs, captured at one write."""

    item_id: str
    name: str = "Stock item"
    quantity: float = 0.0
    threshold: float = 0.0

    @classmethod
    def from_model(cls, item: StockItem) -> "StockSnapshot":
        return cls(item_id=item.id, name=item.name, quantity=item.quantity, threshold=item.threshold)

    @property
    def effective_quantity(self) -> float:
        # Unreadable quantities count as empty stock
        return self.quantity if math.isfinite(self.quantity) else 0.0


class OrderCreatedEvent(BaseModel):
    """An order record was inserted."""

    type: Literal["order_created"] = "order_created"
    event_id: str = Field(default_factory=_event_id)
    stream: OrderStream
    order_id: str


class OrderUpdatedEvent(BaseModel):
    """An order's status field was written."""

    type: Literal["order_updated"] = "order_updated"
    event_id: str = Field(default_factory=_event_id)
    stream: OrderStream
    order_id: str
    previous_status: str | None
    status: str


class StockWrittenEvent(BaseModel):
    """A stock item was inserted or its quantity/threshold/name changed."""

    type: Literal["stock_written"] = "stock_written"
    event_id: str = Field(default_factory=_event_id)
    before: StockSnapshot | None
    after: StockSnapshot


TriggerEvent = OrderCreatedEvent | OrderUpdatedEvent | StockWrittenEvent
