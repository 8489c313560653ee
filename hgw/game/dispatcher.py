"""Action dispatcher -- launch one HGW action across a set of workers.

A dispatch launches the action's script on every eligible worker at once,
then suspends the caller until the slowest instance is done.  All instances
start together against the same target state, so one wait time computed at
dispatch time covers all of them.

Capacity shortfall is not an error: with no eligible worker the dispatch is a
zero-duration no-op and the caller's loop decides when to retry.  A launch
that fails on one worker is logged and skipped; the other workers keep their
allocation.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from hgw.config import BatcherConfig
from hgw.game.actions import Action, script_for
from hgw.game.capacity import threads
from hgw.game.errors import require
from hgw.game.host import Host, Worker
from hgw.game.oracle import TargetOracle

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class Dispatch:
    """One action against one target and the threads each worker ran."""

    action: Action
    target: str
    threads: dict[str, int] = field(default_factory=dict)
    pids: list[int] = field(default_factory=list)
    started_at_ms: float = 0.0
    wait_ms: float = 0.0

    @property
    def total_threads(self) -> int:
        return sum(self.threads.values())

    @property
    def is_noop(self) -> bool:
        return not self.threads

    @property
    def completes_at_ms(self) -> float:
        return self.started_at_ms + self.wait_ms


class Dispatcher:
    def __init__(
        self,
        host: Host,
        oracle: TargetOracle,
        config: BatcherConfig,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = monotonic_ms,
    ) -> None:
        self._host = host
        self._oracle = oracle
        self._config = config
        self._sleep = sleep
        self._clock = clock

    async def capacity(self, action: Action, workers: list[Worker]) -> dict[str, int]:
        """Threads of *action*'s script each worker can run right now."""
        script_ram = await self._host.script_ram(script_for(action))
        return {
            w.name: threads(w, script_ram, self._config.home_reserve)
            for w in workers
        }

    async def dispatch(
        self,
        action: Action,
        target: str,
        workers: list[Worker],
        allocation: Optional[dict[str, int]] = None,
    ) -> Dispatch:
        """Run *action* against *target* on *workers* and wait for it.

        Without *allocation* every eligible worker runs as many threads as it
        can.  With *allocation* (worker name -> threads) each worker runs the
        given count, which may not exceed its capacity.
        """
        result = await self.launch(action, target, workers, allocation)
        if result.is_noop:
            return result
        log.debug(
            "%s %s: %d threads on %d workers, waiting %.0f ms",
            action.value, target, result.total_threads, len(result.threads), result.wait_ms,
        )
        await self._sleep(result.wait_ms / 1000)
        await self._wait_for_processes(result.pids)
        return result

    async def launch(
        self,
        action: Action,
        target: str,
        workers: list[Worker],
        allocation: Optional[dict[str, int]] = None,
    ) -> Dispatch:
        """Start *action* on *workers* without waiting for it to finish.

        The returned dispatch carries the wait time computed at launch.
        """
        script = script_for(action)
        capacity = await self.capacity(action, workers)
        eligible = {name: n for name, n in capacity.items() if n >= 1}

        if allocation is None:
            plan = eligible
        else:
            for name, n in allocation.items():
                require(n >= 0, f"Negative thread count {n} for {name}")
                require(
                    n <= capacity.get(name, 0),
                    f"{name} allocated {n} threads but can run {capacity.get(name, 0)}",
                )
            plan = {name: n for name, n in allocation.items() if n >= 1}
        require(
            sum(plan.values()) <= sum(capacity.values()),
            "Dispatch exceeds the capacity of its worker set",
        )

        result = Dispatch(action=action, target=target, started_at_ms=self._clock())
        if not plan:
            log.debug("No worker can run %s against %s", action.value, target)
            return result

        wait_ms = await self._oracle.wait_time(target, action)
        for name, n in plan.items():
            pid = await self._host.launch_action(script, name, n, target)
            if pid is None:
                log.warning(
                    "Failed to launch %s x%d on %s against %s",
                    script, n, name, target,
                )
                continue
            result.threads[name] = n
            result.pids.append(pid)

        if not result.is_noop:
            result.wait_ms = wait_ms
        return result

    async def _wait_for_processes(self, pids: list[int]) -> None:
        """Poll until every launched process has exited."""
        interval = self._config.poll_interval_ms / 1000
        while True:
            running = [pid for pid in pids if await self._host.is_running(pid)]
            if not running:
                return
            await self._sleep(interval)
