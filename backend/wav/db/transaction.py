"""
Explicit transaction boundaries for multi-row mutations.

``savepoint`` nests inside the request transaction owned by ``get_db``
so that, for example, a failed transfer in the middle of a trade accept
undoes the status flip and every earlier transfer without discarding the
rest of the request's work.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from wav.core.exceptions import WavError

logger = structlog.get_logger()


@asynccontextmanager
async def savepoint(db: AsyncSession, name: str = "sp") -> AsyncGenerator[AsyncSession, None]:
    """
    Run the block inside SAVEPOINT ``name``.

    The enclosing transaction stays open; only the block's work is
    discarded when it raises. Domain rejections are logged at info, any
    other failure at warning.
    """
    async with db.begin_nested():
        try:
            yield db
        except WavError as e:
            logger.info("savepoint_rolled_back", savepoint=name, error_type=e.error_type)
            raise
        except Exception as e:
            logger.warning("savepoint_rolled_back", savepoint=name, error=str(e))
            raise
