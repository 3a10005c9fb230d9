"""Database engines and TriggerSession factories."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

# Register all models with SQLModel metadata
import orderdesk.models  # noqa: F401
from orderdesk.config import settings
from orderdesk.db.trigger_session import TriggerSession


def create_engine(*, pool_size: int, max_overflow: int) -> AsyncEngine:
    """Engine for the configured database; SQL echo stays off (structlog decides what is logged)."""
    return create_async_engine(
        settings.database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def trigger_session_maker(bind: AsyncEngine) -> async_sessionmaker[TriggerSession]:
    # Loaded attributes stay readable after commit (handlers keep using the order)
    return async_sessionmaker(bind, class_=TriggerSession, expire_on_commit=False)


# API process engine; workers build their own per event loop (see tasks.utils.task_db)
engine = create_engine(pool_size=5, max_overflow=10)
async_session_maker = trigger_session_maker(engine)


async def get_session() -> AsyncGenerator[TriggerSession]:
    """Request-scoped session whose triggers are enqueued as Dramatiq messages after commit."""
    # Imported lazily: the tasks package configures the Dramatiq broker on import
    from orderdesk.tasks.publisher import DramatiqTriggerPublisher

    async with async_session_maker() as session:
        session.set_trigger_publisher(DramatiqTriggerPublisher())
        yield session


async def dispose_engine() -> None:
    """Release the API engine's pooled connections (application shutdown)."""
    await engine.dispose()
