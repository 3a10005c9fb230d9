"""Edge-triggered low-stock detection."""

import math
from dataclasses import dataclass
from enum import StrEnum

from orderdesk.models.events import StockSnapshot


class StockLevel(StrEnum):
    ABOVE = "above"
    AT_OR_BELOW = "at_or_below"


@dataclass(frozen=True)
class ThresholdSignal:
    """A stock item just dropped to or below its alert threshold."""

    item_id: str
    name: str
    quantity: float
    threshold: float


def classify(snapshot: StockSnapshot, threshold: float | None = None) -> StockLevel:
    """Level of one snapshot against ``threshold`` (default: the snapshot's own).

    A threshold of zero, below zero, or not finite disables alerting, which
    reads as ABOVE regardless of quantity.
    """
    limit = snapshot.threshold if threshold is None else threshold
    if not (math.isfinite(limit) and limit > 0):
        return StockLevel.ABOVE
    if snapshot.effective_quantity > limit:
        return StockLevel.ABOVE
    return StockLevel.AT_OR_BELOW


def detect_threshold_crossing(before: StockSnapshot | None, after: StockSnapshot) -> ThresholdSignal | None:
    """Signal only on the ABOVE -> AT_OR_BELOW transition.

    A missing ``before`` (first write of the item) counts as ABOVE, so an item
    created already low alerts once. Writes that stay low never re-fire.

    Both quantities are compared with the current threshold, so changing
    only the threshold (raising it, or enabling alerting on an item that is
    already low) never alerts.
    """
    previous = StockLevel.ABOVE if before is None else classify(before, after.threshold)
    current = classify(after)
    if previous is StockLevel.ABOVE and current is StockLevel.AT_OR_BELOW:
        return ThresholdSignal(
            item_id=after.item_id,
            name=after.name,
            quantity=after.effective_quantity,
            threshold=after.threshold,
        )
    return None
