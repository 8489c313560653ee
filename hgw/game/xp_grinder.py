"""Hacking-experience grinder.

Preps one target with the ``WG`` strategy, then keeps launching grow on every
worker with spare RAM once a second.  Grow pays experience per thread and
never drains the target, so the money stays at its maximum the whole time.
Grows are not awaited: each second fills whatever RAM the previous wave
freed.
"""
import asyncio
import logging
from typing import Iterable, Optional

from hgw.config import BatcherConfig
from hgw.game import constants as C
from hgw.game.actions import Action
from hgw.game.botnet import BotnetAssembler
from hgw.game.dispatcher import Clock, Dispatcher, Sleep, monotonic_ms
from hgw.game.errors import BankruptTargetError, require
from hgw.game.hack_scheduler import BatcherStats
from hgw.game.host import Host
from hgw.game.oracle import TargetOracle
from hgw.game.prep import PrepScheduler, Strategy

log = logging.getLogger(__name__)


class XpGrinder:
    strategy = Strategy.WG
    fraction = None

    def __init__(
        self,
        host: Host,
        target: str,
        config: BatcherConfig,
        candidates: Optional[Iterable[str]] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = monotonic_ms,
    ) -> None:
        require(target != C.HOME, "Cannot grind experience against the home server")
        self.host = host
        self.target = target
        self.candidates = list(candidates) if candidates is not None else None
        self.stats = BatcherStats()
        self._sleep = sleep
        self._stop = asyncio.Event()

        self.oracle = TargetOracle(host, config)
        self.assembler = BotnetAssembler(host, config)
        self.dispatcher = Dispatcher(host, self.oracle, config, sleep=sleep, clock=clock)
        self.prep = PrepScheduler(
            host, self.oracle, self.dispatcher, self.assembler, config,
            candidates=self.candidates, sleep=sleep, clock=clock,
        )

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def run(self) -> int:
        """Grind until stopped; return the number of grow waves launched."""
        if await self.oracle.is_bankrupt(self.target):
            raise BankruptTargetError(self.target)
        log.info("Grinding hacking experience from %s", self.target)
        result = await self.prep.prep(self.target, self.strategy)
        self.stats.exp_gained += result.exp_gained

        while not self._stop.is_set():
            await self.wave()
            await self._sleep(C.WAIT_SECOND / 1000)
        log.info("Experience grind on %s stopped after %d waves", self.target, self.stats.cycles)
        return self.stats.cycles

    async def wave(self) -> int:
        """Root what we can, then grow the target on every free worker."""
        rooted = set(await self.assembler.nuke_all())
        if self.candidates is not None:
            rooted &= set(self.candidates)
        botnet = await self.assembler.assemble(rooted)

        exp_before = (await self.host.get_player()).hacking_exp
        launched = await self.dispatcher.launch(Action.GROW, self.target, botnet)
        exp_after = (await self.host.get_player()).hacking_exp

        self.stats.cycles += 1
        self.stats.last_threads = launched.total_threads
        self.stats.exp_gained += max(exp_after - exp_before, 0.0)
        return launched.total_threads
