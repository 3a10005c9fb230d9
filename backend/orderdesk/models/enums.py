"""Enum definitions for database models."""

from enum import StrEnum


class OrderStream(StrEnum):
    """Independently numbered order streams."""

    EGG_ORDERS = "egg_orders"
    LIVESTOCK_ORDERS = "livestock_orders"

    @property
    def order_type_label(self) -> str:
        """Lower-case noun used in email copy ("egg order", "livestock order")."""
        return "livestock" if self is OrderStream.LIVESTOCK_ORDERS else "egg"

    @property
    def item_label(self) -> str:
        """Heading for the item subtotal line."""
        return "Items" if self is OrderStream.LIVESTOCK_ORDERS else "Eggs"


class OrderStatus(StrEnum):
    """Fulfilment status of an order, as edited on the dashboard."""

    PENDING = "pending"
    WAITING_LIST = "waiting_list"
    CANCELLED = "cancelled"
    PACKED = "packed"
    SCHEDULED_DISPATCH = "scheduled_dispatch"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @property
    def label(self) -> str:
        return ORDER_STATUS_LABELS[self]


ORDER_STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.WAITING_LIST: "Waiting list",
    OrderStatus.CANCELLED: "Cancelled",
    OrderStatus.PACKED: "Packed",
    OrderStatus.SCHEDULED_DISPATCH: "Scheduled for Dispatch",
    OrderStatus.SHIPPED: "Shipped",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.ARCHIVED: "Archived",
}

# Transitions into these statuses never notify anyone
SILENT_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.CANCELLED, OrderStatus.ARCHIVED})


def status_label(value: str | None) -> str:
    """Human label for a status value; unknown values are shown as-is."""
    if not value:
        return "-"
    try:
        return OrderStatus(value).label
    except ValueError:
        return value


class NotificationKind(StrEnum):
    """Kinds of notification the composer can build."""

    ORDER_CREATED = "order_created"
    ORDER_STATUS_CHANGED = "order_status_changed"
    DISPATCH_REQUESTED = "dispatch_requested"
    CORRECTION_NOTICE = "correction_notice"
    STOCK_THRESHOLD_CROSSED = "stock_threshold_crossed"
    STOCK_SUMMARY = "stock_summary"
    TEST_EMAIL = "test_email"


class Audience(StrEnum):
    """Who a composed notification is addressed to."""

    CUSTOMER = "customer"
    ADMIN = "admin"


class StaffRole(StrEnum):
    """Roles carried in the bearer token's ``role`` claim."""

    WORKER = "worker"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


STAFF_ROLES: frozenset[StaffRole] = frozenset(StaffRole)
ADMIN_ROLES: frozenset[StaffRole] = frozenset({StaffRole.ADMIN, StaffRole.SUPER_ADMIN})
