"""TriggerSession: AsyncSession that emits record lifecycle triggers after commit."""

from typing import Any, Protocol

import structlog
from sqlalchemy import event, inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstanceState

from orderdesk.models.events import (
    OrderCreatedEvent,
    OrderUpdatedEvent,
    StockSnapshot,
    StockWrittenEvent,
    TriggerEvent,
)
from orderdesk.models.order import Order
from orderdesk.models.stock import StockItem

logger = structlog.get_logger(__name__)

# Stock fields whose change counts as a "write" for the threshold watcher
STOCK_TRIGGER_FIELDS = ("quantity", "threshold", "name")


class TriggerPublisher(Protocol):
    """Hands committed trigger events to whatever runs the handlers."""

    def publish(self, events: list[TriggerEvent]) -> None: ...


def _previous_value(state: InstanceState[Any], key: str) -> Any:
    """Value of an attribute before the pending change (current value if unchanged)."""
    history = state.attrs[key].history
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return state.attrs[key].value


class TriggerSession(AsyncSession):
    """AsyncSession that turns flushed changes into trigger events.

    - New Order -> OrderCreatedEvent
    - Order.status changed -> OrderUpdatedEvent (previous and new status)
    - New StockItem, or quantity/threshold/name changed -> StockWrittenEvent

    Events are collected in before_flush (while attribute history still holds
    the previous values) and handed to the injected publisher only after
    commit() succeeds. rollback() discards them.

    Writes issued as Core UPDATE statements (e.g. order number stamping)
    bypass the unit of work and therefore emit nothing.
    """

    # Injected by get_session / task_db_session
    _trigger_publisher: TriggerPublisher | None = None

    _pending_triggers: list[TriggerEvent]

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._pending_triggers = []
        event.listen(self.sync_session, "before_flush", self._before_flush)

    def set_trigger_publisher(self, publisher: TriggerPublisher | None) -> None:
        self._trigger_publisher = publisher

    def _before_flush(self, session: Any, flush_context: Any, instances: Any) -> None:
        for obj in session.new:
            if isinstance(obj, Order):
                self._pending_triggers.append(OrderCreatedEvent(stream=obj.stream, order_id=obj.id))
            elif isinstance(obj, StockItem):
                self._pending_triggers.append(StockWrittenEvent(before=None, after=StockSnapshot.from_model(obj)))

        for obj in session.dirty:
            if not session.is_modified(obj):
                continue
            state = inspect(obj)
            if isinstance(obj, Order):
                history = state.attrs.status.history
                if not history.has_changes():
                    continue
                previous = history.deleted[0] if history.deleted else None
                if previous == obj.status:
                    continue
                self._pending_triggers.append(
                    OrderUpdatedEvent(
                        stream=obj.stream,
                        order_id=obj.id,
                        previous_status=str(previous) if previous is not None else None,
                        status=str(obj.status),
                    )
                )
            elif isinstance(obj, StockItem):
                if not any(state.attrs[key].history.has_changes() for key in STOCK_TRIGGER_FIELDS):
                    continue
                before = StockSnapshot(
                    item_id=obj.id,
                    name=_previous_value(state, "name"),
                    quantity=_previous_value(state, "quantity"),
                    threshold=_previous_value(state, "threshold"),
                )
                self._pending_triggers.append(StockWrittenEvent(before=before, after=StockSnapshot.from_model(obj)))

    async def commit(self) -> None:
        """Commit transaction, then publish the triggers it produced.

        The data is already committed when publishing runs, so a publish
        failure is logged and never raised. Unnumbered orders are picked up
        again by the worker-start recovery.
        """
        await super().commit()
        triggers, self._pending_triggers = self._pending_triggers, []
        if not triggers:
            return
        if self._trigger_publisher is None:
            logger.debug("No trigger publisher configured, dropping triggers", count=len(triggers))
            return
        logger.debug("Publishing triggers", event_types=[t.type for t in triggers])
        try:
            self._trigger_publisher.publish(triggers)
        except Exception:
            logger.exception(
                "Failed to publish triggers after commit",
                event_types=[t.type for t in triggers],
                event_ids=[t.event_id for t in triggers],
            )

    async def rollback(self) -> None:
        self._pending_triggers.clear()
        await super().rollback()
