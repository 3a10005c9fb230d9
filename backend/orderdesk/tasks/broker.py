"""Dramatiq broker configuration."""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker

from orderdesk.config import settings
from orderdesk.logging import setup_logging

# Configure logging before anything else
setup_logging()


def _create_broker() -> dramatiq.Broker:
    if settings.dramatiq_broker == "stub":
        return StubBroker()
    return RedisBroker(url=settings.redis_url)  # type: ignore[no-untyped-call]


broker = _create_broker()
dramatiq.set_broker(broker)
