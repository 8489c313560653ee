import asyncio
from dataclasses import dataclass
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hgw.config import BatcherConfig
from hgw.game import constants as C
from hgw.game.actions import ACTIONS, Action
from hgw.game.host import PlayerSnapshot, TargetSnapshot, Worker
from hgw.models.base import Base
from hgw.models import player, running_script, server  # noqa: F401
from hgw.database import get_db
from hgw.main import create_app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ── Database fixtures ────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app(session_factory)
    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await app.state.manager.stop_all(graceful=False)


# ── Fake host ────────────────────────────────────────────────────────────────

_SCRIPT_ACTION = {spec.script: action for action, spec in ACTIONS.items()}


class VirtualClock:
    """Millisecond clock that only moves when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds * 1000
        await asyncio.sleep(0)


@dataclass
class FakeServer:
    name: str
    max_ram: float = 0.0
    ram_used: float = 0.0
    has_root: bool = True
    rootable: bool = True
    is_home: bool = False
    purchased: bool = False
    security: float = 1.0
    min_security: float = 1.0
    money: float = 0.0
    max_money: float = 0.0
    required_skill: int = 1
    # Fraction of current money one hack thread steals.
    hack_per_thread: float = 0.01
    # Fraction of max money one grow thread adds.
    grow_per_thread: float = 0.01


@dataclass
class Launch:
    pid: int
    action: Action
    worker: str
    threads: int
    target: str
    at_ms: float
    finish_ms: float


class FakeHost:
    """In-memory host.  Effects land at launch; RAM is held until finish."""

    def __init__(self, clock: VirtualClock) -> None:
        self.clock = clock
        self.servers: dict[str, FakeServer] = {}
        self.skill = 1
        self.exp = 0.0
        self.money = 0.0
        self.port_openers = 0
        self.durations = {Action.HACK: 1000.0, Action.GROW: 3200.0, Action.WEAKEN: 4000.0}
        # Extra runtime the host does not report through action_duration.
        self.lag_ms = 0.0
        self.fail_on: set[str] = set()
        self.launches: list[Launch] = []
        self._running: dict[int, Launch] = {}
        self.next_pid = 1

    def add(self, name: str, **kw) -> FakeServer:
        self.servers[name] = FakeServer(name=name, **kw)
        return self.servers[name]

    def actions(self) -> list[Action]:
        return [launch.action for launch in self.launches]

    def _settle(self) -> None:
        for pid, launch in list(self._running.items()):
            if launch.finish_ms <= self.clock.now:
                worker = self.servers[launch.worker]
                ram = C.SCRIPT_RAM[ACTIONS[launch.action].script] * launch.threads
                worker.ram_used = max(worker.ram_used - ram, 0.0)
                del self._running[pid]

    def _target(self, name: str) -> FakeServer:
        if name not in self.servers:
            raise ValueError(f"No server named {name}")
        return self.servers[name]

    async def enumerate_workers(self) -> list[Worker]:
        self._settle()
        return [
            Worker(s.name, s.max_ram, s.ram_used, s.has_root, s.is_home)
            for s in self.servers.values()
            if s.max_ram > 0
        ]

    async def acquire_root(self, name: str) -> bool:
        s = self._target(name)
        if s.rootable:
            s.has_root = True
        return s.has_root

    async def get_target(self, name: str) -> TargetSnapshot:
        s = self._target(name)
        return TargetSnapshot(
            name=s.name,
            security=s.security,
            min_security=s.min_security,
            money=s.money,
            max_money=s.max_money,
            required_skill=s.required_skill,
            has_root=s.has_root,
            purchased=s.purchased,
        )

    async def list_targets(self) -> list[TargetSnapshot]:
        return [await self.get_target(name) for name in self.servers]

    async def get_player(self) -> PlayerSnapshot:
        return PlayerSnapshot(self.skill, self.exp, self.money, self.port_openers)

    async def script_ram(self, script: str) -> float:
        return C.SCRIPT_RAM[script]

    async def launch_action(
        self, script: str, worker: str, threads: int, target: str
    ) -> Optional[int]:
        self._settle()
        if worker in self.fail_on:
            return None
        w = self._target(worker)
        ram = C.SCRIPT_RAM[script] * threads
        if not w.has_root or w.ram_used + ram > w.max_ram + 1e-9:
            return None
        w.ram_used += ram
        action = _SCRIPT_ACTION[script]
        self._apply(action, self._target(target), threads)

        launch = Launch(
            pid=self.next_pid,
            action=action,
            worker=worker,
            threads=threads,
            target=target,
            at_ms=self.clock.now,
            finish_ms=self.clock.now + self.durations[action] + self.lag_ms,
        )
        self.next_pid += 1
        self.launches.append(launch)
        self._running[launch.pid] = launch
        return launch.pid

    async def is_running(self, pid: int) -> bool:
        self._settle()
        return pid in self._running

    async def action_duration(self, target: str, action: Action) -> float:
        return self.durations[action]

    async def action_potency(self, target: str, action: Action) -> float:
        t = self._target(target)
        if action is Action.HACK:
            return t.hack_per_thread
        if action is Action.GROW:
            return t.grow_per_thread
        return C.WEAKEN_SECURITY_PER_THREAD

    def _apply(self, action: Action, t: FakeServer, threads: int) -> None:
        if action is Action.WEAKEN:
            t.security = max(t.security - C.WEAKEN_SECURITY_PER_THREAD * threads, t.min_security)
        elif action is Action.GROW:
            t.money = min(t.money + t.max_money * t.grow_per_thread * threads, t.max_money)
            t.security += C.GROW_SECURITY_PER_THREAD * threads
        else:
            stolen = t.money * min(t.hack_per_thread * threads, 1.0)
            t.money -= stolen
            self.money += stolen
            t.security += C.HACK_SECURITY_PER_THREAD * threads
        self.exp += threads


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def host(clock):
    return FakeHost(clock)


@pytest.fixture
def config():
    return BatcherConfig()
