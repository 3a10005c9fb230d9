from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

import pytest
from dramatiq import Message
from sqlalchemy.exc import OperationalError

import orderdesk.tasks  # noqa: F401
from orderdesk.models.enums import OrderStream
from orderdesk.models.events import OrderCreatedEvent, OrderUpdatedEvent, StockSnapshot, StockWrittenEvent
from orderdesk.models.order import Order
from orderdesk.services.exceptions import ConfigurationError, DeliveryRejectedError, TransientTransportError
from orderdesk.tasks.broker import broker
from orderdesk.tasks.orders import order_events
from orderdesk.tasks.orders.order_events import find_unnumbered_orders, handle_order_created
from orderdesk.tasks.publisher import DramatiqTriggerPublisher
from orderdesk.tasks.utils import recovery
from orderdesk.tasks.utils.decorators import get_recoverable_tasks
from orderdesk.tasks.utils.retry import MAX_HANDLER_RETRIES, retry_transient
from orderdesk.utils import redis_lock


@pytest.fixture(autouse=True)
def flush_broker():
    broker.flush_all()
    yield
    broker.flush_all()


class TestRetryPolicy:
    @pytest.mark.parametrize(
        "error",
        [
            TransientTransportError("HTTP error: 503"),
            OperationalError("SELECT 1", {}, Exception("connection refused")),
        ],
    )
    def test_transient_errors_are_retried(self, error):
        assert retry_transient(0, error)
        assert retry_transient(MAX_HANDLER_RETRIES - 1, error)

    def test_retries_are_bounded(self):
        assert not retry_transient(MAX_HANDLER_RETRIES, TransientTransportError("HTTP error: 429"))

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("RESEND_API_KEY is not configured"),
            DeliveryRejectedError(422, "invalid from address"),
            KeyError("stream"),
        ],
    )
    def test_fatal_errors_are_not_retried(self, error):
        assert not retry_transient(0, error)


def test_publisher_routes_events_to_notification_queue():
    events = [
        OrderCreatedEvent(stream=OrderStream.EGG_ORDERS, order_id="01JB2Q6Z6W1V3S9N8M7K5H4G3F"),
        OrderUpdatedEvent(
            stream=OrderStream.EGG_ORDERS,
            order_id="01JB2Q6Z6W1V3S9N8M7K5H4G3F",
            previous_status="pending",
            status="packed",
        ),
        StockWrittenEvent(before=None, after=StockSnapshot(item_id="item-1", quantity=1, threshold=5)),
    ]

    DramatiqTriggerPublisher().publish(events)

    queue = broker.queues["notifications"]
    assert queue.qsize() == 3
    messages = [Message.decode(queue.get_nowait()) for _ in range(3)]
    assert [m.actor_name for m in messages] == ["handle_order_created", "handle_order_updated", "handle_stock_written"]
    assert messages[1].args[0]["status"] == "packed"


def test_order_created_is_recoverable():
    registered = {fn.actor_name: dedup_field for fn, _, dedup_field in get_recoverable_tasks()}

    assert registered[handle_order_created.actor_name] == "order_id"


async def test_find_unnumbered_orders_skips_recent_and_numbered(session):
    old = datetime.now(UTC) - timedelta(hours=1)
    stale = Order(stream=OrderStream.EGG_ORDERS, name="Stale", created_at=old)
    session.add_all(
        [
            stale,
            Order(stream=OrderStream.EGG_ORDERS, name="Numbered", order_number="#0001", created_at=old),
            Order(stream=OrderStream.LIVESTOCK_ORDERS, name="Fresh"),
        ]
    )
    await session.commit()

    messages = await find_unnumbered_orders(session)

    assert len(messages) == 1
    assert messages[0]["order_id"] == stale.id
    assert messages[0]["stream"] == "egg_orders"
    assert messages[0]["type"] == "order_created"


async def test_created_handler_allocates_and_notifies(session, delivery, monkeypatch):
    order = Order(stream=OrderStream.EGG_ORDERS, name="Lerato", email="lerato@example.com")
    session.add(order)
    await session.commit()

    @asynccontextmanager
    async def fake_task_db_session():
        yield session

    monkeypatch.setattr(order_events, "task_db_session", fake_task_db_session)
    monkeypatch.setattr(order_events, "ResendService", lambda settings: delivery)

    await order_events._handle_order_created(OrderCreatedEvent(stream=order.stream, order_id=order.id))

    assert order.order_number == "#0001"
    assert delivery.sent[0].recipients == ("lerato@example.com",)


class FakeRedis:
    """Just enough of SET NX EX / DELETE for RedisLock."""

    def __init__(self):
        self.keys: dict[str, str] = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.keys:
            return None
        self.keys[key] = value
        return True

    def delete(self, key):
        self.keys.pop(key, None)


async def test_recovery_resends_each_order_once(session, monkeypatch):
    session.add(Order(stream=OrderStream.EGG_ORDERS, name="Stale", created_at=datetime.now(UTC) - timedelta(hours=1)))
    await session.commit()

    @asynccontextmanager
    async def fake_task_db_session():
        yield session

    fake_redis = FakeRedis()
    monkeypatch.setattr(recovery, "task_db_session", fake_task_db_session)
    monkeypatch.setattr(redis_lock, "get_redis", lambda: fake_redis)

    assert await recovery._recover_pending() == 1
    # Second pass falls inside the dedup window
    assert await recovery._recover_pending() == 0
    assert broker.queues["notifications"].qsize() == 1


def test_lock_held_elsewhere():
    client = FakeRedis()

    with redis_lock.RedisLock("job", client=client) as first:
        assert first
        with redis_lock.RedisLock("job", client=client) as second:
            assert not second
        with pytest.raises(redis_lock.LockUnavailable):
            with redis_lock.RedisLock("job", client=client, raise_exc=True):
                pass

    assert client.keys == {}
