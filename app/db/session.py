import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings
from app.core.exceptions import ConflictError, InternalError, ServiceError

logger = logging.getLogger(__name__)

# pool_pre_ping: check connection is alive before use (avoids "connection is closed" errors
# when DB or network closed idle connections).
# pool_recycle: discard connections after this many seconds to avoid stale connections.
engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    future=True,
    pool_pre_ping=True,
    pool_recycle=300,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a unit of work as one transaction: commit on normal exit, rollback on any error.

    Duplicate-key failures surface as ConflictError, service errors pass through unchanged,
    anything else is logged and re-raised as InternalError.
    """
    try:
        yield db
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        conflict = ConflictError.from_integrity_error(e)
        if conflict is None:
            logger.exception("Transaction rolled back on integrity error")
            raise InternalError("Data integrity error while processing the request") from e
        logger.warning("Transaction rolled back on duplicate key: %s", conflict.message)
        raise conflict from e
    except ServiceError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("Transaction rolled back on unexpected error")
        raise InternalError(str(e) or "Unexpected error while processing the request") from e
