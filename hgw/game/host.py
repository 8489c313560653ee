"""Host interface -- what the schedulers need from the game.

The schedulers never touch the game directly.  Everything goes through an
object implementing :class:`Host`; the simulated world in
:mod:`hgw.game.sim_host` is one such object and tests use an in-memory fake.
All methods are coroutines because a real host is reached over I/O.
"""
from dataclasses import dataclass
from typing import Optional, Protocol

from hgw.game.actions import Action


@dataclass(frozen=True)
class Worker:
    """Snapshot of a server that can run HGW scripts."""

    name: str
    max_ram: float
    ram_used: float
    has_root: bool
    is_home: bool = False


@dataclass(frozen=True)
class TargetSnapshot:
    name: str
    security: float
    min_security: float
    money: float
    max_money: float
    required_skill: int = 1
    growth: float = 0.0
    has_root: bool = True
    purchased: bool = False


@dataclass(frozen=True)
class PlayerSnapshot:
    hacking_skill: int
    hacking_exp: float
    money: float
    port_openers: int


class Host(Protocol):
    async def enumerate_workers(self) -> list[Worker]: ...

    async def acquire_root(self, name: str) -> bool: ...

    async def get_target(self, name: str) -> TargetSnapshot: ...

    async def list_targets(self) -> list[TargetSnapshot]: ...

    async def get_player(self) -> PlayerSnapshot: ...

    async def script_ram(self, script: str) -> float: ...

    async def launch_action(
        self, script: str, worker: str, threads: int, target: str
    ) -> Optional[int]: ...

    async def is_running(self, pid: int) -> bool: ...

    async def action_duration(self, target: str, action: Action) -> float: ...

    async def action_potency(self, target: str, action: Action) -> float: ...
