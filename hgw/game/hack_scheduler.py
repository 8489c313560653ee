"""Hack scheduler -- the sequential batcher.

One scheduler owns one target.  Each cycle it preps the target, works out how
many hack threads steal the requested fraction of money, spreads those
threads over the current botnet and waits for the hack to land.  Then it
starts over.  Actions never overlap inside one scheduler: every dispatch is
awaited before the next decision is taken.

When the botnet cannot supply all the threads, the scheduler hacks with what
it has.

``stop()`` only takes effect at the top of the loop.  A launched action
cannot be recalled, so a cycle in flight always runs to completion.
"""
import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

from hgw.config import BatcherConfig
from hgw.game.actions import Action
from hgw.game.botnet import BotnetAssembler
from hgw.game.dispatcher import Clock, Dispatch, Dispatcher, Sleep, monotonic_ms
from hgw.game.errors import BankruptTargetError, require
from hgw.game.host import Host
from hgw.game.oracle import TargetOracle
from hgw.game.prep import PrepResult, PrepScheduler, Strategy

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Thread planning
# ---------------------------------------------------------------------------


def required_threads(fraction: float, per_thread: float) -> int:
    """Hack threads needed to steal *fraction* when one thread steals *per_thread*."""
    require(0 < fraction <= 1, f"Steal fraction must be in (0, 1], got {fraction}")
    if per_thread <= 0:
        return 0
    return math.ceil(fraction / per_thread)


def allocate(capacity: dict[str, int], required: int) -> dict[str, int]:
    """Fill workers, largest first, until *required* threads are placed.

    Returns fewer threads than *required* when the workers run out.
    """
    require(required >= 0, f"Negative thread requirement {required}")
    allocation: dict[str, int] = {}
    placed = 0
    for name, available in sorted(capacity.items(), key=lambda kv: (-kv[1], kv[0])):
        if placed >= required:
            break
        if available < 1:
            continue
        k = min(available, required - placed)
        allocation[name] = k
        placed += k
    return allocation


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class CycleResult:
    target: str
    prep: PrepResult
    dispatch: Dispatch
    threads_required: int
    money_before: float
    money_after: float
    exp_gained: float

    @property
    def threads_allocated(self) -> int:
        return self.dispatch.total_threads

    @property
    def money_stolen(self) -> float:
        return max(self.money_before - self.money_after, 0.0)


@dataclass
class BatcherStats:
    cycles: int = 0
    money_stolen: float = 0.0
    exp_gained: float = 0.0
    last_threads: int = 0


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class HackScheduler:
    def __init__(
        self,
        host: Host,
        target: str,
        fraction: float,
        config: BatcherConfig,
        strategy: Strategy = Strategy.GW,
        candidates: Optional[Iterable[str]] = None,
        abandon: Optional[Callable[[], Awaitable[bool]]] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = monotonic_ms,
    ) -> None:
        require(0 < fraction <= 1, f"Steal fraction must be in (0, 1], got {fraction}")
        self.host = host
        self.target = target
        self.fraction = fraction
        self.strategy = Strategy(strategy)
        self.candidates = list(candidates) if candidates is not None else None
        self.stats = BatcherStats()
        self._config = config
        self._abandon = abandon
        self._sleep = sleep
        self._stop = asyncio.Event()

        self.oracle = TargetOracle(host, config)
        self.assembler = BotnetAssembler(host, config)
        self.dispatcher = Dispatcher(host, self.oracle, config, sleep=sleep, clock=clock)
        self.prep = PrepScheduler(
            host, self.oracle, self.dispatcher, self.assembler, config,
            candidates=self.candidates, sleep=sleep, clock=clock,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Ask the loop to exit before its next cycle."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def run(self) -> int:
        """Hack the target until stopped or abandoned; return cycles completed."""
        if await self.oracle.is_bankrupt(self.target):
            raise BankruptTargetError(self.target)
        log.info(
            "Batcher on %s started (fraction=%.2f, strategy=%s)",
            self.target, self.fraction, self.strategy.value,
        )
        while not self._stop.is_set():
            await self.cycle()
            if self._abandon is not None and await self._abandon():
                log.info("Abandoning %s", self.target)
                break
        log.info("Batcher on %s stopped after %d cycles", self.target, self.stats.cycles)
        return self.stats.cycles

    # ------------------------------------------------------------------
    # One cycle
    # ------------------------------------------------------------------

    async def cycle(self) -> CycleResult:
        prep = await self.prep.prep(self.target, self.strategy)

        botnet = await self.assembler.assemble(self.candidates)
        before = await self.oracle.snapshot(self.target)
        if before.max_money == 0:
            raise BankruptTargetError(self.target)
        per_thread = await self.host.action_potency(self.target, Action.HACK)
        required = required_threads(self.fraction, per_thread)
        capacity = await self.dispatcher.capacity(Action.HACK, botnet)
        allocation = allocate(capacity, required)

        exp_before = (await self.host.get_player()).hacking_exp
        dispatch = await self.dispatcher.dispatch(
            Action.HACK, self.target, botnet, allocation,
        )
        if dispatch.is_noop:
            log.debug("No hack threads available for %s; retrying", self.target)
            await self._sleep(self._config.empty_botnet_delay_ms / 1000)
        elif dispatch.total_threads < required:
            log.debug(
                "Hacking %s with %d of %d threads", self.target,
                dispatch.total_threads, required,
            )

        after = await self.oracle.snapshot(self.target)
        exp_after = (await self.host.get_player()).hacking_exp
        result = CycleResult(
            target=self.target,
            prep=prep,
            dispatch=dispatch,
            threads_required=required,
            money_before=before.money,
            money_after=after.money,
            exp_gained=max(exp_after - exp_before, 0.0) + prep.exp_gained,
        )
        self.stats.cycles += 1
        self.stats.money_stolen += result.money_stolen
        self.stats.exp_gained += result.exp_gained
        self.stats.last_threads = dispatch.total_threads
        return result
