"""Pure formatting helpers shared by every notification kind."""

import html
import math
import re
from collections.abc import Iterable
from dataclasses import dataclass

from orderdesk.models.types import LineItemData

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


def escape_html(value: object) -> str:
    """Escape free text for insertion into an HTML body.

    Applied to every interpolated customer- or admin-supplied string.
    ``None`` renders as an empty string.
    """
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def to_number(value: object) -> float:
    """Coerce a stored value to a finite float (anything unreadable is 0)."""
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def format_currency(value: object, prefix: str = "R") -> str:
    """Money with exactly two decimals and a fixed prefix: 12.5 -> "R12.50"."""
    return f"{prefix}{to_number(value):.2f}"


def format_quantity(value: object) -> str:
    """Quantities print without a trailing ".0" when whole."""
    number = to_number(value)
    return str(int(number)) if number.is_integer() else f"{number:g}"


def normalize_url(value: str | None) -> str:
    """Prefix scheme-less links with https:// so mail clients render them."""
    url = (value or "").strip()
    if not url:
        return ""
    if _SCHEME.match(url):
        return url
    return f"https://{url}"


def unit_price(item: LineItemData) -> float:
    """Special price wins only when present and non-zero."""
    special = item.special_price
    if special is None or to_number(special) == 0:
        return to_number(item.price)
    return to_number(special)


@dataclass(frozen=True)
class BreakdownLine:
    label: str
    quantity: float
    unit_price: float

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderTotals:
    subtotal: float
    delivery: float

    @property
    def total(self) -> float:
        return self.subtotal + self.delivery


def breakdown(items: Iterable[LineItemData]) -> list[BreakdownLine]:
    """Billable lines; items with no positive quantity are left out."""
    return [
        BreakdownLine(label=item.label, quantity=to_number(item.quantity), unit_price=unit_price(item))
        for item in items
        if to_number(item.quantity) > 0
    ]


def calculate_totals(items: Iterable[LineItemData], delivery_cost: object) -> OrderTotals:
    subtotal = sum(line.line_total for line in breakdown(items))
    return OrderTotals(subtotal=subtotal, delivery=to_number(delivery_cost))


def paid_label(paid: bool | None) -> str:
    return "Yes" if paid else "No"
