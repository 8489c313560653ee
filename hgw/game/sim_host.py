"""Host backed by the simulated world in the database.

Each call opens its own short-lived session and commits, so concurrent
batchers and the world loop always see each other's writes.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hgw.game import constants as C
from hgw.game import world_engine
from hgw.game.actions import Action
from hgw.game.host import PlayerSnapshot, TargetSnapshot, Worker
from hgw.models.server import Server


def _target(server: Server) -> TargetSnapshot:
    return TargetSnapshot(
        name=server.hostname,
        security=server.security,
        min_security=server.min_security,
        money=server.money,
        max_money=server.max_money,
        required_skill=server.required_skill,
        growth=server.growth,
        has_root=server.has_root,
        purchased=server.purchased_by_player,
    )


def _worker(server: Server) -> Worker:
    return Worker(
        name=server.hostname,
        max_ram=server.max_ram,
        ram_used=server.ram_used,
        has_root=server.has_root,
        is_home=server.is_home,
    )


class DatabaseHost:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        time_scale: float = 1.0,
    ) -> None:
        self._session_factory = session_factory
        self._time_scale = time_scale

    async def enumerate_workers(self) -> list[Worker]:
        async with self._session_factory() as db:
            return [_worker(s) for s in await world_engine.list_servers(db)]

    async def acquire_root(self, name: str) -> bool:
        async with self._session_factory() as db:
            rooted = await world_engine.nuke(db, name)
            await db.commit()
            return rooted

    async def get_target(self, name: str) -> TargetSnapshot:
        async with self._session_factory() as db:
            return _target(await world_engine.get_server(db, name))

    async def list_targets(self) -> list[TargetSnapshot]:
        async with self._session_factory() as db:
            return [_target(s) for s in await world_engine.list_servers(db)]

    async def get_player(self) -> PlayerSnapshot:
        async with self._session_factory() as db:
            player = await world_engine.get_player(db)
            return PlayerSnapshot(
                hacking_skill=player.hacking_skill,
                hacking_exp=player.hacking_exp,
                money=player.money,
                port_openers=player.port_openers,
            )

    async def script_ram(self, script: str) -> float:
        return C.SCRIPT_RAM[script]

    async def launch_action(
        self, script: str, worker: str, threads: int, target: str
    ) -> Optional[int]:
        async with self._session_factory() as db:
            pid = await world_engine.launch_script(
                db, script, worker, threads, target, self._time_scale,
            )
            await db.commit()
            return pid

    async def is_running(self, pid: int) -> bool:
        async with self._session_factory() as db:
            return await world_engine.is_running(db, pid)

    async def action_duration(self, target: str, action: Action) -> float:
        async with self._session_factory() as db:
            server = await world_engine.get_server(db, target)
            player = await world_engine.get_player(db)
            return world_engine.action_duration(server, player, action, self._time_scale)

    async def action_potency(self, target: str, action: Action) -> float:
        async with self._session_factory() as db:
            server = await world_engine.get_server(db, target)
            player = await world_engine.get_player(db)
            return world_engine.action_potency(server, player, action)
