from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from hgw.config import settings
from hgw.models.base import Base

engine = create_async_engine(settings.DATABASE_URL, echo=False)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def session_factory_for(request: Request) -> async_sessionmaker[AsyncSession]:
    """The factory the app was built with, or the module default."""
    return getattr(request.app.state, "session_factory", async_session)


async def get_db(request: Request):
    """Request-scoped session; commits on success, rolls back on error."""
    async with session_factory_for(request)() as db:
        try:
            yield db
        except Exception:
            await db.rollback()
            raise
        else:
            await db.commit()


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create any missing tables.  Alembic owns schema changes after that."""
    from hgw.models import player, running_script, server  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db(bind: Optional[AsyncEngine] = None) -> None:
    await (bind or engine).dispose()
