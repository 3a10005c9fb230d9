"""Database sessions for Dramatiq actors."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from orderdesk.db.session import create_engine, trigger_session_maker
from orderdesk.db.trigger_session import TriggerPublisher, TriggerSession


@asynccontextmanager
async def task_db_session(publisher: TriggerPublisher | None = None) -> AsyncGenerator[TriggerSession]:
    """Session for one actor invocation, committed on success and rolled back on error.

    Every actor wraps its work in ``asyncio.run()``, and asyncpg connections
    are bound to the loop that opened them, so each call gets a small engine
    of its own that is disposed on exit.

    Writes made inside a task publish their triggers through ``publisher``
    (Dramatiq by default). The order number stamp is a Core UPDATE and
    publishes nothing.

    Usage:
        async with task_db_session() as session:
            dispatcher = EventDispatcher(session, delivery, settings)
            ...
    """
    from orderdesk.tasks.publisher import DramatiqTriggerPublisher

    engine = create_engine(pool_size=2, max_overflow=3)
    try:
        async with trigger_session_maker(engine)() as session:
            session.set_trigger_publisher(publisher or DramatiqTriggerPublisher())
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise
    finally:
        await engine.dispose()
