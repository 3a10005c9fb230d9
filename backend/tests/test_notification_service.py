import pytest
from ulid import ULID

from orderdesk.models.enums import NotificationKind, OrderStream
from orderdesk.models.order import Order
from orderdesk.models.stock import StockItem
from orderdesk.services.exceptions import ValidationError
from orderdesk.services.notifications.notification_service import NotificationService, StockReport
from orderdesk.services.orders.exceptions import MissingDispatchDetails, OrderNotFound


@pytest.fixture
def service(session, delivery, settings):
    return NotificationService(session, delivery, settings)


async def add_order(session, **fields):
    values = {"stream": OrderStream.LIVESTOCK_ORDERS, "name": "Anele", "order_number": "#0007"}
    values.update(fields)
    order = Order(**values)
    session.add(order)
    await session.commit()
    return order


class TestDispatchNotification:
    async def test_sends_and_records_timestamp(self, session, service, delivery):
        order = await add_order(session, email="anele@example.com", send_date="2026-11-03")

        result = await service.request_dispatch_notification(OrderStream.LIVESTOCK_ORDERS, order.id)

        assert result.delivery_id == "msg_1"
        [payload] = delivery.sent
        assert payload.kind is NotificationKind.DISPATCH_REQUESTED
        assert payload.recipients == ("anele@example.com",)
        await session.refresh(order)
        assert order.dispatch_email_sent_at is not None

    @pytest.mark.parametrize(
        "fields",
        [
            {"email": "", "send_date": "2026-11-03"},
            {"email": "anele@example.com", "send_date": ""},
        ],
    )
    async def test_missing_details_sends_nothing(self, session, service, delivery, fields):
        order = await add_order(session, **fields)

        with pytest.raises(MissingDispatchDetails):
            await service.request_dispatch_notification(OrderStream.LIVESTOCK_ORDERS, order.id)

        assert delivery.sent == []
        await session.refresh(order)
        assert order.dispatch_email_sent_at is None

    async def test_unknown_order(self, service):
        with pytest.raises(OrderNotFound):
            await service.request_dispatch_notification(OrderStream.EGG_ORDERS, str(ULID()))

    async def test_order_from_other_stream_is_not_found(self, session, service):
        order = await add_order(session, email="anele@example.com", send_date="2026-11-03")

        with pytest.raises(OrderNotFound):
            await service.request_dispatch_notification(OrderStream.EGG_ORDERS, order.id)


class TestStockReports:
    async def test_morning_report_lists_low_items_only(self, session, service, delivery):
        session.add_all(
            [
                StockItem(name="Layer feed", quantity=2, threshold=5),
                StockItem(name="Straw bales", quantity=40, threshold=10),
            ]
        )
        await session.commit()

        delivery_id = await service.send_stock_report(StockReport.MORNING)

        assert delivery_id == "msg_1"
        [payload] = delivery.sent
        assert payload.subject == "Morning stock summary"
        assert "Layer feed" in payload.html_body
        assert "Straw bales" not in payload.html_body

    async def test_daily_report_lists_everything(self, session, service, delivery):
        session.add_all(
            [
                StockItem(name="Layer feed", quantity=2, threshold=5),
                StockItem(name="Straw bales", quantity=40, threshold=10),
            ]
        )
        await session.commit()

        await service.send_stock_report(StockReport.DAILY)

        [payload] = delivery.sent
        assert "Layer feed" in payload.html_body
        assert "Straw bales" in payload.html_body

    async def test_no_recipients(self, session, delivery, make_settings):
        service = NotificationService(session, delivery, make_settings(admin_email=""))

        assert await service.send_stock_report(StockReport.TEST) is None
        assert delivery.sent == []

    def test_report_titles(self):
        assert StockReport("evening").title == "Evening stock summary"
        assert not StockReport.MORNING.include_all
        assert StockReport.TEST.include_all


class TestCorrectionEmails:
    async def test_sends_to_each_order_with_email(self, session, service, delivery):
        first = await add_order(session, email="anele@example.com")
        second = await add_order(session, name="Sipho", email="sipho@example.com", order_number=None)

        result = await service.send_correction_emails(
            OrderStream.LIVESTOCK_ORDERS, [first.id, second.id], message="Collection moved to Saturday."
        )

        assert result.sent == 2
        assert [(d.order_id, d.email, d.delivery_id) for d in result.deliveries] == [
            (first.id, "anele@example.com", "msg_1"),
            (second.id, "sipho@example.com", "msg_2"),
        ]
        assert [p.kind for p in delivery.sent] == [NotificationKind.CORRECTION_NOTICE] * 2
        assert "Collection moved to Saturday." in delivery.sent[0].html_body

    async def test_skips_unknown_orders_and_missing_emails(self, session, service, delivery):
        with_email = await add_order(session, email="anele@example.com")
        without_email = await add_order(session, email="")
        other_stream = await add_order(session, stream=OrderStream.EGG_ORDERS, email="egg@example.com")

        result = await service.send_correction_emails(
            OrderStream.LIVESTOCK_ORDERS,
            [str(ULID()), "not-an-id", without_email.id, other_stream.id, with_email.id],
        )

        assert result.sent == 1
        assert result.deliveries[0].order_id == with_email.id
        [payload] = delivery.sent
        assert payload.recipients == ("anele@example.com",)

    async def test_requires_order_ids(self, service, delivery):
        with pytest.raises(ValidationError):
            await service.send_correction_emails(OrderStream.EGG_ORDERS, [])

        assert delivery.sent == []


class TestTestEmail:
    async def test_sends_to_given_recipients(self, service, delivery):
        await service.send_test_email([" ops@example.com ", ""], subject="Hello")

        [payload] = delivery.sent
        assert payload.kind is NotificationKind.TEST_EMAIL
        assert payload.recipients == ("ops@example.com",)
        assert payload.subject == "Hello"

    async def test_requires_a_recipient(self, service, delivery):
        with pytest.raises(ValidationError):
            await service.send_test_email(["", "  "])

        assert delivery.sent == []
