import os

# Must be set before orderdesk.config is imported anywhere
os.environ.setdefault("DRAMATIQ_BROKER", "stub")
os.environ.setdefault("LOG_LEVEL", "warning")

from collections.abc import AsyncIterator, Callable  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import orderdesk.models  # noqa: E402, F401
from orderdesk.config import Settings  # noqa: E402
from orderdesk.db.session import trigger_session_maker  # noqa: E402
from orderdesk.db.trigger_session import TriggerSession  # noqa: E402
from orderdesk.models.events import TriggerEvent  # noqa: E402
from orderdesk.services.notifications.composer import NotificationPayload  # noqa: E402


class RecordingPublisher:
    """Collects published trigger events instead of enqueueing them."""

    def __init__(self) -> None:
        self.events: list[TriggerEvent] = []
        self.error: Exception | None = None

    def publish(self, events: list[TriggerEvent]) -> None:
        if self.error is not None:
            raise self.error
        self.events.extend(events)


class FakeDelivery:
    """Delivery client that records payloads and hands out sequential ids."""

    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[NotificationPayload] = []
        self.error = error

    async def send_payload(self, payload: NotificationPayload) -> str | None:
        if self.error is not None:
            raise self.error
        self.sent.append(payload)
        return f"msg_{len(self.sent)}"


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "resend_api_key": "re_test",
        "resend_from": "Shop <orders@example.com>",
        "admin_email": "owner@example.com",
        "brand_name": "The Crooked Fence",
        "whatsapp_number": "082 000 0000",
        "payment_bank": "FNB",
        "payment_account_number": "123456789",
        "auth_jwt_secret": "test-secret",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture(name="make_settings")
def make_settings_fixture() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    # File database so concurrent sessions use separate connections
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'orderdesk.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def session_maker(engine: AsyncEngine, publisher: RecordingPublisher) -> Callable[[], TriggerSession]:
    """Factory for sessions wired to the recording publisher (one per concurrent worker)."""
    maker = trigger_session_maker(engine)

    def make() -> TriggerSession:
        session = maker()
        session.set_trigger_publisher(publisher)
        return session

    return make


@pytest.fixture
async def session(session_maker) -> AsyncIterator[TriggerSession]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def delivery() -> FakeDelivery:
    return FakeDelivery()
