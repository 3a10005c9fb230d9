"""Database package with session management and trigger emission."""

from orderdesk.db.session import async_session_maker, dispose_engine, engine, get_session
from orderdesk.db.trigger_session import TriggerPublisher, TriggerSession

__all__ = [
    "TriggerPublisher",
    "TriggerSession",
    "async_session_maker",
    "dispose_engine",
    "engine",
    "get_session",
]
