"""
Async engine, session factory and the request-scoped session dependency.
"""
from collections.abc import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from wav.core.config import settings
from wav.core.exceptions import WavError

logger = structlog.get_logger()


def _engine_options(url: str) -> dict:
    # SQLite (tests, local dev) takes no pool or server settings
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": 1800,
        "pool_timeout": 20,
        "connect_args": {
            "server_settings": {
                "statement_timeout": str(settings.db_statement_timeout_ms),
                "application_name": "wav_api",
            },
            "command_timeout": settings.db_statement_timeout_ms / 1000,
        },
    }


engine = create_async_engine(
    settings.database_url_computed,
    echo=False,
    **_engine_options(settings.database_url_computed),
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request.

    Commits when the handler returns and rolls back on any exception, so
    a rejected unbox or trade never leaves half-applied ownership rows.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except WavError as e:
            await session.rollback()
            logger.debug("request_rolled_back", error_type=e.error_type)
            raise
        except Exception as e:
            await session.rollback()
            logger.error(
                "database_session_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
