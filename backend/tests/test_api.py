import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from orderdesk.api.v1.dependencies import get_delivery_client, get_request_settings
from orderdesk.db import get_session
from orderdesk.main import app
from orderdesk.models.enums import OrderStream
from orderdesk.models.order import Order
from orderdesk.services.exceptions import ConfigurationError, TransientTransportError

ORDER_FORM = {
    "name": "Lerato",
    "surname": "Mokoena",
    "email": "lerato@example.com",
    "sendDate": "2026-11-01",
    "deliveryCost": 80,
    "lineItems": [{"id": "duck", "label": "Duck eggs", "price": 12, "quantity": 6}],
}


def token(role: str | None = "worker", email: str = "staff@example.com") -> dict[str, str]:
    claims = {"sub": "user-1", "email": email}
    if role is not None:
        claims["role"] = role
    return {"Authorization": f"Bearer {jwt.encode(claims, 'test-secret', algorithm='HS256')}"}


@pytest.fixture
def api_settings(make_settings):
    return make_settings(BOOTSTRAP_ADMINS="founder@example.com")


@pytest.fixture
async def client(session_maker, delivery, api_settings):
    async def override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_delivery_client] = lambda: delivery
    app.dependency_overrides[get_request_settings] = lambda: api_settings
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def add_order(session_maker, **fields):
    values = {"stream": OrderStream.EGG_ORDERS, "name": "Lerato", "email": "lerato@example.com"}
    values.update(fields)
    async with session_maker() as session:
        order = Order(**values)
        session.add(order)
        await session.commit()
    return order


async def test_health(client):
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestOrders:
    async def test_submit_returns_id_and_queues_allocation(self, client, publisher):
        response = await client.post("/api/v1/orders/egg_orders", json=ORDER_FORM)

        assert response.status_code == 201
        body = response.json()
        assert body["stream"] == "egg_orders"
        assert body["order_number"] is None
        [event] = publisher.events
        assert event.type == "order_created"
        assert event.order_id == body["id"]

    async def test_submit_succeeds_when_broker_is_down(self, client, publisher, session_maker):
        publisher.error = ConnectionError("redis unavailable")

        response = await client.post("/api/v1/orders/egg_orders", json=ORDER_FORM)

        assert response.status_code == 201
        async with session_maker() as session:
            assert await session.get(Order, response.json()["id"]) is not None

    async def test_unknown_stream(self, client):
        response = await client.post("/api/v1/orders/duck_orders", json=ORDER_FORM)

        assert response.status_code == 422

    async def test_name_is_required(self, client):
        response = await client.post("/api/v1/orders/egg_orders", json={**ORDER_FORM, "name": ""})

        assert response.status_code == 422

    async def test_number_lookup(self, client, session_maker):
        order = await add_order(session_maker, order_number="#0042")

        response = await client.get(f"/api/v1/orders/egg_orders/{order.id}/number")

        assert response.status_code == 200
        assert response.json()["order_number"] == "#0042"

    @pytest.mark.parametrize("order_id", ["not-an-id", "01JB2Q6Z6W1V3S9N8M7K5H4G3F"])
    async def test_number_lookup_unknown_order(self, client, order_id):
        response = await client.get(f"/api/v1/orders/egg_orders/{order_id}/number")

        assert response.status_code == 404

    async def test_number_lookup_is_scoped_to_stream(self, client, session_maker):
        order = await add_order(session_maker, order_number="#0042")

        response = await client.get(f"/api/v1/orders/livestock_orders/{order.id}/number")

        assert response.status_code == 404

    async def test_detail_requires_sign_in(self, client, session_maker):
        order = await add_order(session_maker)

        assert (await client.get(f"/api/v1/orders/egg_orders/{order.id}")).status_code == 401
        bad = {"Authorization": "Bearer not-a-token"}
        assert (await client.get(f"/api/v1/orders/egg_orders/{order.id}", headers=bad)).status_code == 401

    async def test_detail_requires_staff_role(self, client, session_maker):
        order = await add_order(session_maker)

        response = await client.get(f"/api/v1/orders/egg_orders/{order.id}", headers=token(role=None))

        assert response.status_code == 403

    async def test_detail_includes_totals(self, client, session_maker):
        order = await add_order(
            session_maker,
            delivery_cost=80,
            line_items=[{"id": "duck", "label": "Duck eggs", "price": 12, "quantity": 6}],
        )

        response = await client.get(f"/api/v1/orders/egg_orders/{order.id}", headers=token())

        assert response.status_code == 200
        body = response.json()
        assert body["subtotal"] == 72
        assert body["total"] == 152

    async def test_status_edit_emits_update_event(self, client, session_maker, publisher):
        order = await add_order(session_maker)
        publisher.events.clear()

        response = await client.patch(
            f"/api/v1/orders/egg_orders/{order.id}", json={"status": "packed"}, headers=token()
        )

        assert response.status_code == 200
        assert response.json()["status"] == "packed"
        [event] = publisher.events
        assert (event.type, event.previous_status, event.status) == ("order_updated", "pending", "packed")

    async def test_invalid_status(self, client, session_maker):
        order = await add_order(session_maker)

        response = await client.patch(
            f"/api/v1/orders/egg_orders/{order.id}", json={"status": "lost"}, headers=token()
        )

        assert response.status_code == 422


class TestDispatchNotification:
    async def test_sends_email(self, client, session_maker, delivery):
        order = await add_order(session_maker, order_number="#0005", send_date="2026-11-01")

        response = await client.post(
            f"/api/v1/orders/egg_orders/{order.id}/dispatch-notification", headers=token()
        )

        assert response.status_code == 200
        assert response.json() == {"id": "msg_1"}
        assert delivery.sent[0].recipients == ("lerato@example.com",)

    async def test_missing_send_date(self, client, session_maker, delivery):
        order = await add_order(session_maker, send_date="")

        response = await client.post(
            f"/api/v1/orders/egg_orders/{order.id}/dispatch-notification", headers=token()
        )

        assert response.status_code == 422
        assert delivery.sent == []

    async def test_unknown_order(self, client):
        response = await client.post(
            "/api/v1/orders/egg_orders/01JB2Q6Z6W1V3S9N8M7K5H4G3F/dispatch-notification", headers=token()
        )

        assert response.status_code == 404


class TestCorrectionEmails:
    async def test_admin_sends_corrections(self, client, session_maker, delivery):
        order = await add_order(session_maker, order_number="#0009")
        no_email = await add_order(session_maker, email="")

        response = await client.post(
            "/api/v1/orders/egg_orders/correction-emails",
            json={"orderIds": [order.id, no_email.id], "message": "Your collection date changed."},
            headers=token(role="admin"),
        )

        assert response.status_code == 200
        assert response.json() == {
            "sent": 1,
            "results": [{"id": order.id, "email": "lerato@example.com", "result": "msg_1"}],
        }
        [payload] = delivery.sent
        assert payload.subject == "Order update from The Crooked Fence"

    async def test_admin_only(self, client, session_maker, delivery):
        order = await add_order(session_maker)

        response = await client.post(
            "/api/v1/orders/egg_orders/correction-emails", json={"orderIds": [order.id]}, headers=token()
        )

        assert response.status_code == 403
        assert delivery.sent == []

    async def test_requires_order_ids(self, client, delivery):
        response = await client.post(
            "/api/v1/orders/egg_orders/correction-emails", json={"orderIds": []}, headers=token(role="admin")
        )

        assert response.status_code == 422
        assert delivery.sent == []


class TestStock:
    async def test_create_and_update_emit_stock_events(self, client, publisher):
        created = await client.post(
            "/api/v1/stock", json={"name": "Layer feed", "quantity": 10, "threshold": 5}, headers=token()
        )
        assert created.status_code == 201
        item_id = created.json()["id"]

        updated = await client.patch(f"/api/v1/stock/{item_id}", json={"quantity": 4}, headers=token())

        assert updated.status_code == 200
        assert updated.json()["quantity"] == 4
        assert [event.type for event in publisher.events] == ["stock_written", "stock_written"]
        assert publisher.events[1].before.quantity == 10

    async def test_create_requires_name(self, client):
        response = await client.post("/api/v1/stock", json={"quantity": 3}, headers=token())

        assert response.status_code == 422

    async def test_update_unknown_item(self, client):
        response = await client.patch("/api/v1/stock/missing", json={"quantity": 1}, headers=token())

        assert response.status_code == 404

    async def test_summary_is_admin_only(self, client, delivery):
        response = await client.post("/api/v1/stock/summary", json={}, headers=token(role="worker"))

        assert response.status_code == 403
        assert delivery.sent == []

    @pytest.mark.parametrize(
        "headers",
        [
            token(role="admin"),
            token(role="super_admin"),
            token(role="worker", email="Founder@example.com"),
        ],
    )
    async def test_summary_sent_for_admins(self, client, delivery, headers):
        response = await client.post("/api/v1/stock/summary", json={"report": "daily"}, headers=headers)

        assert response.status_code == 200
        [payload] = delivery.sent
        assert payload.subject == "Daily stock summary"


class TestTestEmail:
    async def test_sends(self, client, delivery):
        response = await client.post(
            "/api/v1/notifications/test-email",
            json={"to": ["ops@example.com"], "message": "Ping"},
            headers=token(role="admin"),
        )

        assert response.status_code == 200
        assert delivery.sent[0].recipients == ("ops@example.com",)

    async def test_requires_recipient(self, client):
        response = await client.post(
            "/api/v1/notifications/test-email", json={"to": [" "]}, headers=token(role="admin")
        )

        assert response.status_code == 422

    async def test_transport_unavailable(self, client, delivery):
        delivery.error = TransientTransportError("HTTP error: 503")

        response = await client.post(
            "/api/v1/notifications/test-email", json={"to": ["ops@example.com"]}, headers=token(role="admin")
        )

        assert response.status_code == 503

    async def test_transport_not_configured(self, client, delivery):
        delivery.error = ConfigurationError("RESEND_API_KEY is not configured")

        response = await client.post(
            "/api/v1/notifications/test-email", json={"to": ["ops@example.com"]}, headers=token(role="admin")
        )

        assert response.status_code == 500
        assert response.json() == {"detail": "RESEND_API_KEY is not configured"}
