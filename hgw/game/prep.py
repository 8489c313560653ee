"""Prep scheduler -- drive a target to minimum security and maximum money.

Grow and hack both raise security, and each dispatch moves the target by
however many threads happened to be free that cycle, so a single weaken or
grow rarely lands the target exactly.  Every strategy therefore loops and
re-reads both predicates after each dispatch, and only exits once both hold
at the same time.

Four strategies are supported.  Which one converges fastest depends on the
target's security/money profile and is chosen by the caller:

- ``WG``: loop { weaken if needed; grow if needed }
- ``GW``: loop { grow if needed; weaken if needed }
- ``MWG``: weaken to minimum security first, then ``WG``
- ``MGW``: grow to maximum money first, then weaken to minimum security
"""
import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from hgw.config import BatcherConfig
from hgw.game.actions import Action
from hgw.game.botnet import BotnetAssembler
from hgw.game.dispatcher import Clock, Dispatch, Dispatcher, Sleep, monotonic_ms
from hgw.game.errors import BankruptTargetError
from hgw.game.host import Host
from hgw.game.oracle import TargetOracle

log = logging.getLogger(__name__)


class Strategy(str, enum.Enum):
    WG = "wg"
    GW = "gw"
    MWG = "mwg"
    MGW = "mgw"


@dataclass
class PrepResult:
    target: str
    strategy: Strategy
    elapsed_ms: float
    exp_gained: float
    dispatches: int


class PrepScheduler:
    def __init__(
        self,
        host: Host,
        oracle: TargetOracle,
        dispatcher: Dispatcher,
        assembler: BotnetAssembler,
        config: BatcherConfig,
        candidates: Optional[Iterable[str]] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = monotonic_ms,
    ) -> None:
        self._host = host
        self._oracle = oracle
        self._dispatcher = dispatcher
        self._assembler = assembler
        self._config = config
        self._candidates = list(candidates) if candidates is not None else None
        self._sleep = sleep
        self._clock = clock
        self._strategies = {
            Strategy.WG: self._prep_wg,
            Strategy.GW: self._prep_gw,
            Strategy.MWG: self._prep_mwg,
            Strategy.MGW: self._prep_mgw,
        }

    async def prep(self, target: str, strategy: Strategy) -> PrepResult:
        """Prep *target* with *strategy*; return how long it took and the exp gained."""
        if await self._oracle.is_bankrupt(target):
            raise BankruptTargetError(target)
        start = self._clock()
        exp_before = (await self._host.get_player()).hacking_exp
        done: list[Dispatch] = []

        await self._strategies[Strategy(strategy)](target, done)

        exp_after = (await self._host.get_player()).hacking_exp
        result = PrepResult(
            target=target,
            strategy=Strategy(strategy),
            elapsed_ms=self._clock() - start,
            exp_gained=max(exp_after - exp_before, 0.0),
            dispatches=len(done),
        )
        if done:
            log.info(
                "Prepped %s with %s in %.1f s (%d dispatches)",
                target, result.strategy.value, result.elapsed_ms / 1000, len(done),
            )
        return result

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _prep_wg(self, target: str, done: list[Dispatch]) -> None:
        while True:
            if not await self._oracle.has_min_security(target):
                await self._act(target, Action.WEAKEN, done)
            if not await self._oracle.has_max_money(target):
                await self._act(target, Action.GROW, done)
            if await self._oracle.is_prepped(target):
                return

    async def _prep_gw(self, target: str, done: list[Dispatch]) -> None:
        while True:
            if not await self._oracle.has_max_money(target):
                await self._act(target, Action.GROW, done)
            if not await self._oracle.has_min_security(target):
                await self._act(target, Action.WEAKEN, done)
            if await self._oracle.is_prepped(target):
                return

    async def _prep_mwg(self, target: str, done: list[Dispatch]) -> None:
        while not await self._oracle.has_min_security(target):
            await self._act(target, Action.WEAKEN, done)
        await self._prep_wg(target, done)

    async def _prep_mgw(self, target: str, done: list[Dispatch]) -> None:
        while not await self._oracle.has_max_money(target):
            await self._act(target, Action.GROW, done)
        while not await self._oracle.has_min_security(target):
            await self._act(target, Action.WEAKEN, done)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _act(self, target: str, action: Action, done: list[Dispatch]) -> Dispatch:
        """Dispatch *action* on a fresh botnet; back off if nothing ran."""
        botnet = await self._assembler.assemble(self._candidates)
        dispatch = await self._dispatcher.dispatch(action, target, botnet)
        if dispatch.is_noop:
            await self._sleep(self._config.empty_botnet_delay_ms / 1000)
        else:
            done.append(dispatch)
        return dispatch
