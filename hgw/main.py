import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hgw.config import settings
from hgw.database import async_session, dispose_db, init_db
from hgw.game import world_generator
from hgw.game.batcher_manager import BatcherManager
from hgw.game.sim_host import DatabaseHost
from hgw.game.world_loop import WorldLoop

log = logging.getLogger(__name__)


async def seed_world(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as db:
        if not await world_generator.is_seeded(db):
            await world_generator.generate_world(db)
            await db.commit()
            log.info("Seeded a fresh world")


@asynccontextmanager
async def lifespan(app: FastAPI):
    factory = app.state.session_factory
    bind = factory.kw.get("bind")
    await init_db(bind)
    await seed_world(factory)
    await app.state.world_loop.start()
    if settings.AUTOSTART_WORLD_BATCHER:
        await app.state.manager.start_world()
    yield
    await app.state.manager.stop_all(graceful=False)
    await app.state.world_loop.stop()
    if factory is async_session:
        await dispose_db()


def create_app(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> FastAPI:
    app = FastAPI(title="HGW Batcher", version="0.1.0", lifespan=lifespan)

    app.state.session_factory = session_factory or async_session
    app.state.world_loop = WorldLoop(app.state.session_factory)
    host = DatabaseHost(app.state.session_factory, settings.TIME_SCALE)
    app.state.manager = BatcherManager(host, settings.batcher_config())

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    from hgw.api.batchers import router as batchers_router
    from hgw.api.servers import router as servers_router

    app.include_router(servers_router)
    app.include_router(batchers_router)

    @app.get("/")
    async def root():
        return {"status": "ok", "service": "hgw-batcher"}

    return app


app = create_app()
