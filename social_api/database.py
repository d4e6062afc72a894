"""
Async SQLAlchemy engine + session factory.

Production runs on TiDB through aiomysql (TiDB speaks the MySQL 5.7 wire
protocol). ``DATABASE_URL`` may point at any other async driver; pool sizing
is only applied to server-backed databases.

One session per request: everything a handler does commits together or
rolls back together, which is what makes the cascading post delete and the
follow/like + notification pairs atomic.
"""
import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from social_api.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        return {}
    return {"pool_pre_ping": True, "pool_size": 20, "max_overflow": 10}


engine = create_async_engine(
    settings.tidb_url, echo=False, **_engine_options(settings.tidb_url)
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    """Create missing tables; existing ones are left untouched."""
    # Register the mappers on Base.metadata before create_all
    from social_api import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(
        "Database ready (%s), %d tables",
        make_url(settings.tidb_url).render_as_string(hide_password=True),
        len(Base.metadata.tables),
    )


async def close_db() -> None:
    await engine.dispose()


async def get_db():
    """Request-scoped session: commit on success, roll back on any error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            logger.debug("Rolling back request transaction: %r", exc)
            await session.rollback()
            raise
