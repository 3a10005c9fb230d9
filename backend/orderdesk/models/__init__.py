"""Database models."""

from orderdesk.models.counter import StreamCounter
from orderdesk.models.order import Order
from orderdesk.models.stock import StockItem

__all__ = ["Order", "StockItem", "StreamCounter"]
