"""Botnet assembler -- gather the workers usable for one scheduling cycle.

The botnet is rebuilt on every call.  Workers come and go between cycles
(sold, destroyed, newly rooted).
"""
import logging
from dataclasses import replace
from typing import Iterable, Optional

from hgw.config import BatcherConfig
from hgw.game.capacity import free_ram
from hgw.game.errors import require
from hgw.game.host import Host, Worker

log = logging.getLogger(__name__)


class BotnetAssembler:
    def __init__(self, host: Host, config: BatcherConfig) -> None:
        self._host = host
        self._config = config

    async def assemble(self, candidates: Optional[Iterable[str]] = None) -> list[Worker]:
        """Rooted workers with free RAM, optionally restricted to *candidates*.

        Workers lacking root access get one best-effort ``acquire_root``
        attempt; those that still lack it are left out.
        """
        names = set(candidates) if candidates is not None else None
        botnet: list[Worker] = []
        for worker in await self._host.enumerate_workers():
            if names is not None and worker.name not in names:
                continue
            if not worker.has_root:
                if not await self._host.acquire_root(worker.name):
                    continue
                log.info("Gained root access to %s", worker.name)
                worker = replace(worker, has_root=True)
            if free_ram(worker, self._config.home_reserve) <= 0:
                continue
            botnet.append(worker)
        return botnet

    async def nuke_all(self) -> list[str]:
        """Try to root every known server; return the names we have root on."""
        rooted = []
        for worker in await self._host.enumerate_workers():
            if worker.has_root or await self._host.acquire_root(worker.name):
                rooted.append(worker.name)
        return rooted


def partition(names: list[str], n: int) -> list[list[str]]:
    """Split worker *names* round-robin into *n* disjoint groups."""
    require(n > 0, f"Cannot partition workers into {n} groups")
    groups: list[list[str]] = [[] for _ in range(n)]
    for i, name in enumerate(names):
        groups[i % n].append(name)
    return groups
