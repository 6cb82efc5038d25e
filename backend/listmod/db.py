from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncGenerator
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from listmod.config import settings
from listmod.errors import StorageError

log = structlog.get_logger()

class Base(DeclarativeBase):
    pass

engine = create_async_engine(settings.database_url, future=True, echo=False)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session

@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Commit everything done inside the block, or nothing.
    Any exception rolls the session back; driver/ORM failures surface as StorageError.
    """
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        log.exception("storage_error", error=str(e))
        raise StorageError() from e
    except BaseException:
        await session.rollback()
        raise
