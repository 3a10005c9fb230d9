"""Trigger publisher that turns committed events into Dramatiq messages."""

import structlog

from orderdesk.models.events import TriggerEvent

logger = structlog.get_logger(__name__)


class DramatiqTriggerPublisher:
    """Sends each trigger event to the actor that handles its type.

    Messages carry the event as JSON-mode dict; the actor validates it back
    into the pydantic model.
    """

    def publish(self, events: list[TriggerEvent]) -> None:
        from orderdesk.tasks.orders.order_events import handle_order_created, handle_order_updated
        from orderdesk.tasks.stock.stock_events import handle_stock_written

        actors = {
            "order_created": handle_order_created,
            "order_updated": handle_order_updated,
            "stock_written": handle_stock_written,
        }
        for trigger in events:
            actors[trigger.type].send(trigger.model_dump(mode="json"))
            logger.debug("Trigger enqueued", type=trigger.type, event_id=trigger.event_id)
