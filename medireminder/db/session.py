from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import AsyncGenerator
from fastapi import Request
from contextlib import asynccontextmanager

from medireminder.core.exceptions import StorageUnavailable
import logging

logger = logging.getLogger(__name__)


# Session dependency for FastAPI routes
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Create and yield a database session using the engine owned by the app.
    The session factory is built in the lifespan handler and lives on app.state.
    """
    async_session = getattr(request.app.state, "session_factory", None)
    if async_session is None:
        logger.error("Session factory requested before application startup completed.")
        raise RuntimeError("Database session factory not initialized.")

    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def storage_errors(db: AsyncSession, action: str) -> AsyncGenerator[None, None]:
    """
    Translate driver/connectivity failures inside the block into StorageUnavailable.
    IntegrityError is left alone so callers can map it to a domain error.
    """
    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Storage failure while trying to {action}: {e}", exc_info=True)
        try:
            await db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed after storage error")
        raise StorageUnavailable() from e
