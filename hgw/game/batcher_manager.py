"""Batcher manager -- runs hack schedulers as background tasks.

Every running batcher claims a fixed set of workers.  Claims never overlap:
the dispatcher does not lock workers, so two batchers sharing one would
double-book its RAM.  A start request whose claim intersects a running
batcher's claim is refused.

Kinds of batcher:

- ``single``: one target, a given worker set (default: every world server).
- ``world``: every world server, target picked by a ``TargetPolicy`` and
  re-picked after each cycle.
- ``split``: the world servers partitioned across the best few targets,
  one batcher per target.
- ``pserv``: one batcher per purchased server, targets handed out
  round-robin from the ranked candidates.
- ``xp``: prep one target, then grow it on every worker for experience.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Coroutine, Iterable, Optional, Union

from hgw.config import BatcherConfig
from hgw.game import constants as C
from hgw.game.botnet import partition
from hgw.game.dispatcher import Clock, Sleep, monotonic_ms
from hgw.game.errors import InvariantViolation
from hgw.game.hack_scheduler import HackScheduler
from hgw.game.host import Host
from hgw.game.prep import Strategy
from hgw.game.targeting import StrategyTable, TargetPolicy, TieredTargetPolicy, find_candidates
from hgw.game.xp_grinder import XpGrinder

log = logging.getLogger(__name__)

WORLD = "world"
XP = "xp"


class ClaimConflict(ValueError):
    """A batcher tried to claim workers another batcher already owns."""


@dataclass
class BatcherHandle:
    name: str
    kind: str
    workers: frozenset[str]
    task: Optional[asyncio.Task] = None
    scheduler: Optional[Union[HackScheduler, XpGrinder]] = None
    error: Optional[str] = None
    _stopping: bool = field(default=False, repr=False)

    def stop(self) -> None:
        self._stopping = True
        if self.scheduler is not None:
            self.scheduler.stop()

    @property
    def stopping(self) -> bool:
        return self._stopping

    @property
    def status(self) -> str:
        if self.error is not None:
            return "failed"
        if self.task is None or self.task.done():
            return "finished"
        return "stopping" if self._stopping else "running"

    def to_dict(self) -> dict:
        sched = self.scheduler
        return {
            "name": self.name,
            "kind": self.kind,
            "status": self.status,
            "target": sched.target if sched else None,
            "fraction": sched.fraction if sched else None,
            "strategy": sched.strategy.value if sched else None,
            "workers": sorted(self.workers),
            "cycles": sched.stats.cycles if sched else 0,
            "money_stolen": sched.stats.money_stolen if sched else 0.0,
            "exp_gained": sched.stats.exp_gained if sched else 0.0,
            "error": self.error,
        }


class BatcherManager:
    def __init__(
        self,
        host: Host,
        config: BatcherConfig,
        strategies: Optional[StrategyTable] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = monotonic_ms,
    ) -> None:
        self.host = host
        self.config = config
        self.strategies = strategies if strategies is not None else StrategyTable()
        self._sleep = sleep
        self._clock = clock
        self._batchers: dict[str, BatcherHandle] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, name: str) -> Optional[BatcherHandle]:
        return self._batchers.get(name)

    def status(self) -> list[dict]:
        return [h.to_dict() for h in self._batchers.values()]

    def claimed(self) -> set[str]:
        """Workers owned by batchers that have not finished."""
        owned: set[str] = set()
        for handle in self._batchers.values():
            if handle.status in ("running", "stopping"):
                owned |= handle.workers
        return owned

    async def world_servers(self) -> list[str]:
        """Every server that is neither home nor purchased."""
        return [
            t.name for t in await self.host.list_targets()
            if not t.purchased and t.name != C.HOME
        ]

    async def purchased_servers(self) -> list[str]:
        return [
            t.name for t in await self.host.list_targets()
            if t.purchased and t.name != C.HOME
        ]

    # ------------------------------------------------------------------
    # Starting batchers
    # ------------------------------------------------------------------

    async def start(
        self,
        target: str,
        fraction: Optional[float] = None,
        strategy: Optional[Strategy] = None,
        workers: Optional[Iterable[str]] = None,
        name: Optional[str] = None,
    ) -> BatcherHandle:
        """Start a batcher on *target* using *workers* (default: world servers)."""
        if workers is None:
            workers = await self.world_servers()
        handle = self._claim(name or target, "single", workers)
        handle.scheduler = self._scheduler(target, fraction, strategy, handle.workers)
        self._spawn(handle, handle.scheduler.run())
        return handle

    async def start_world(
        self,
        policy: Optional[TargetPolicy] = None,
    ) -> BatcherHandle:
        """Pool every world server against the target *policy* picks."""
        policy = policy or TieredTargetPolicy()
        handle = self._claim(WORLD, WORLD, await self.world_servers())
        self._spawn(handle, self._run_world(handle, policy))
        return handle

    async def deploy_pserv(self, fraction: Optional[float] = None) -> list[BatcherHandle]:
        """Start one batcher per idle purchased server, targets round-robin."""
        fraction = fraction or self.config.default_money_fraction
        candidates = await find_candidates(self.host)
        if not candidates:
            log.info("No candidate targets for purchased servers")
            return []
        owned = self.claimed()
        idle = [p for p in await self.purchased_servers() if p not in owned]
        handles = []
        for k, phost in enumerate(idle):
            target = candidates[k % len(candidates)]
            handles.append(await self.start(target, fraction, workers=[phost], name=phost))
        return handles

    async def deploy_world(self, count: int) -> list[BatcherHandle]:
        """Split the idle world servers across the *count* best targets."""
        candidates = (await find_candidates(self.host))[:count]
        if not candidates:
            log.info("No candidate targets for world servers")
            return []
        owned = self.claimed()
        idle = [w for w in await self.world_servers() if w not in owned]
        handles = []
        for target, group in zip(candidates, partition(idle, len(candidates))):
            if not group:
                continue
            handle = self._claim(f"{WORLD}-{target}", "split", group)
            handle.scheduler = self._scheduler(target, None, None, handle.workers)
            self._spawn(handle, handle.scheduler.run())
            handles.append(handle)
        return handles

    async def start_xp(
        self,
        target: str = C.JOES,
        workers: Optional[Iterable[str]] = None,
    ) -> BatcherHandle:
        """Grind hacking experience by growing *target* on every worker."""
        if workers is None:
            workers = await self.world_servers()
        handle = self._claim(f"{XP}-{target}", XP, workers)
        handle.scheduler = XpGrinder(
            self.host, target, self.config, candidates=handle.workers,
            sleep=self._sleep, clock=self._clock,
        )
        self._spawn(handle, handle.scheduler.run())
        return handle

    # ------------------------------------------------------------------
    # Stopping batchers
    # ------------------------------------------------------------------

    async def stop(self, name: str, wait: bool = True) -> BatcherHandle:
        """Stop *name* after its current cycle; optionally wait for that."""
        handle = self._batchers.get(name)
        if handle is None:
            raise KeyError(name)
        handle.stop()
        if wait and handle.task is not None:
            await asyncio.gather(handle.task, return_exceptions=True)
        return handle

    async def stop_all(self, graceful: bool = True) -> None:
        """Stop every batcher.  ``graceful=False`` cancels in-flight cycles."""
        for handle in self._batchers.values():
            handle.stop()
        tasks = [h.task for h in self._batchers.values() if h.task is not None]
        if not graceful:
            for task in tasks:
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _claim(self, name: str, kind: str, workers: Iterable[str]) -> BatcherHandle:
        existing = self._batchers.get(name)
        if existing is not None and existing.status in ("running", "stopping"):
            raise ClaimConflict(f"Batcher {name} is already running")
        wanted = frozenset(workers)
        overlap = wanted & self.claimed()
        if overlap:
            raise ClaimConflict(f"Workers already claimed: {', '.join(sorted(overlap))}")
        handle = BatcherHandle(name=name, kind=kind, workers=wanted)
        self._batchers[name] = handle
        return handle

    def _scheduler(
        self,
        target: str,
        fraction: Optional[float],
        strategy: Optional[Strategy],
        workers: Iterable[str],
        abandon=None,
    ) -> HackScheduler:
        return HackScheduler(
            self.host,
            target,
            fraction or C.HACK_FRACTION.get(target, self.config.default_money_fraction),
            self.config,
            strategy=strategy or self.strategies.for_target(target),
            candidates=workers,
            abandon=abandon,
            sleep=self._sleep,
            clock=self._clock,
        )

    def _spawn(self, handle: BatcherHandle, coro: Coroutine[Any, Any, Any]) -> None:
        handle.task = asyncio.create_task(self._supervise(handle, coro))
        log.info("Started %s batcher %s", handle.kind, handle.name)

    async def _supervise(self, handle: BatcherHandle, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            await coro
        except InvariantViolation as exc:
            handle.error = str(exc)
            log.error("Batcher %s failed: %s", handle.name, exc)
        except asyncio.CancelledError:
            log.info("Batcher %s cancelled", handle.name)
            raise
        except Exception as exc:
            handle.error = str(exc) or repr(exc)
            log.exception("Batcher %s crashed", handle.name)

    async def _run_world(self, handle: BatcherHandle, policy: TargetPolicy) -> None:
        prev = None
        while not handle.stopping:
            target = await policy.choose(self.host)
            if target != prev:
                log.info("Prep and hack %s", target)
                prev = target

            async def retarget(current=target) -> bool:
                return await policy.choose(self.host) != current

            handle.scheduler = self._scheduler(target, None, None, handle.workers, retarget)
            if handle.stopping:
                break
            await handle.scheduler.run()
