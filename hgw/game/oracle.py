"""Target state oracle.

Every query goes back to the host.  Nothing is cached: the target keeps
changing under concurrent dispatches, so a snapshot is only good for the
decision it was taken for.

Each snapshot is checked against the target invariants
``security >= min_security >= 0`` and ``0 <= money <= max_money``; a host
reporting anything else raises :class:`InvariantViolation`.
"""
from hgw.config import BatcherConfig
from hgw.game.actions import Action
from hgw.game.errors import require
from hgw.game.host import Host, TargetSnapshot


def check_snapshot(t: TargetSnapshot) -> TargetSnapshot:
    require(t.min_security >= 0, f"{t.name}: negative minimum security {t.min_security}")
    require(
        t.security >= t.min_security,
        f"{t.name}: security {t.security} below minimum {t.min_security}",
    )
    require(
        0 <= t.money <= t.max_money,
        f"{t.name}: money {t.money} outside [0, {t.max_money}]",
    )
    return t


class TargetOracle:
    def __init__(self, host: Host, config: BatcherConfig) -> None:
        self._host = host
        self._config = config

    async def snapshot(self, target: str) -> TargetSnapshot:
        return check_snapshot(await self._host.get_target(target))

    async def has_max_money(self, target: str) -> bool:
        t = await self.snapshot(target)
        return t.money >= t.max_money

    async def has_min_security(self, target: str) -> bool:
        t = await self.snapshot(target)
        return t.security <= t.min_security

    async def is_prepped(self, target: str) -> bool:
        """Minimum security and maximum money, read from one snapshot."""
        t = await self.snapshot(target)
        return t.security <= t.min_security and t.money >= t.max_money

    async def is_bankrupt(self, target: str) -> bool:
        t = await self.snapshot(target)
        return t.max_money == 0

    async def wait_time(self, target: str, action: Action) -> float:
        """Milliseconds until *action* started now completes, plus the buffer."""
        duration = await self._host.action_duration(target, action)
        return duration + self._config.buffer_time_ms
