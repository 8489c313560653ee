"""World loop -- finishes running HGW scripts at ``TICK_RATE`` Hz.

The FastAPI lifespan (or the ``batch`` command) owns the loop.  A tick opens
one session, lets :func:`world_engine.tick_scripts` complete every script
whose finish time has passed, then commits.  Sleeps are measured from the
start of each tick so a slow tick does not push the schedule back.
"""
import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hgw.config import settings
from hgw.database import async_session
from hgw.game import world_engine

log = logging.getLogger(__name__)


class WorldLoop:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
        tick_rate: float = settings.TICK_RATE,
    ) -> None:
        self._session_factory = session_factory
        self.tick_rate = tick_rate
        self._task: Optional[asyncio.Task] = None
        self.paused = False
        self.tick_count = 0
        self.completed_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="world-loop")
        log.info("World loop started at %.1f Hz", self.tick_rate)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        log.info("World loop stopped after %d ticks", self.tick_count)

    def pause(self) -> None:
        """Skip ticks until :meth:`resume`; due scripts finish on the next tick."""
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = 1.0 / self.tick_rate
        while True:
            started = loop.time()
            if not self.paused:
                try:
                    await self.tick()
                except Exception:
                    log.exception("World tick %d failed", self.tick_count)
            await asyncio.sleep(max(interval - (loop.time() - started), 0.0))

    async def tick(self) -> list[dict]:
        """Complete every due script and return what each one did."""
        self.tick_count += 1
        async with self._session_factory() as db:
            completed = await world_engine.tick_scripts(db)
            await db.commit()

        for done in completed:
            log.debug("%s on %s finished (pid %d)", done["action"], done["target"], done["pid"])
        self.completed_count += len(completed)
        return completed
