"""
Async engine & session factory.

`get_db` yields one AsyncSession per request.  The session is committed
when the route returns normally and rolled back if anything raises, so
services only ever `flush()`; a service that must persist state while
reporting a failure commits explicitly before returning.
"""

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from admin_auth.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=False, pool_pre_ping=True)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
