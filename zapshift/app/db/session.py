"""
Engine and session factory.

One engine per process, created at import and disposed by the application
lifespan. Each request gets its own `AsyncSession` through `get_db`.
"""

from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from zapshift.app.core.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pool sizing applies to server databases only; SQLite uses its own pool."""
    options: Dict[str, Any] = {"echo": settings.db_echo}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

# Objects stay readable after commit; services return them to the handlers
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


def utcnow() -> datetime:
    """Timezone-aware UTC now, used for every stored timestamp."""
    return datetime.now(timezone.utc)


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency yielding a request-scoped session.

    Work left uncommitted when the request ends is rolled back on close.
    """
    async with AsyncSessionLocal() as session:
        yield session
