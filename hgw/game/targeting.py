"""Target selection -- which server to hack and how to prep it.

Both decisions are policies injected into the batchers.  The tiers and the
per-target strategies below were tuned by hand against the game.
"""
from dataclasses import dataclass, field
from typing import Mapping, Protocol

from hgw.game import constants as C
from hgw.game.host import Host, TargetSnapshot
from hgw.game.prep import Strategy


class TargetPolicy(Protocol):
    async def choose(self, host: Host) -> str: ...


class TieredTargetPolicy:
    """Pick a target from the number of port openers and the hacking skill.

    - n00dles until BruteSSH and FTPCrack are owned,
    - joesguns until every port opener is owned,
    - phantasy once half our skill covers its requirement,
    - n00dles otherwise.
    """

    async def choose(self, host: Host) -> str:
        player = await host.get_player()
        if player.port_openers < C.PORT_OPENERS_TIER_ONE:
            return C.NOODLES
        if player.port_openers < C.PORT_OPENERS_ALL:
            return C.JOES
        phantasy = await host.get_target(C.PHANTASY)
        if player.hacking_skill // 2 >= phantasy.required_skill:
            return C.PHANTASY
        return C.NOODLES


@dataclass(frozen=True)
class StrategyTable:
    """Prep strategy per target, with a fallback for everything else."""

    default: Strategy = Strategy.GW
    table: Mapping[str, Strategy] = field(
        default_factory=lambda: {
            C.NOODLES: Strategy.GW,
            C.JOES: Strategy.GW,
            C.PHANTASY: Strategy.WG,
        }
    )

    def for_target(self, target: str) -> Strategy:
        return self.table.get(target, self.default)


def weight(target: TargetSnapshot, skill: int) -> float:
    """How attractive *target* is; 0 means do not hack it."""
    if (
        target.name == C.HOME
        or target.purchased
        or not target.has_root
        or target.required_skill > skill / 2
        or target.min_security <= 0
    ):
        return 0.0
    return target.max_money / target.min_security


async def find_candidates(host: Host, exclude=C.PSERV_EXCLUDE) -> list[str]:
    """Hackable targets, best first, skipping *exclude* and bankrupt servers."""
    skill = (await host.get_player()).hacking_skill
    ranked = [
        (weight(t, skill), t.name)
        for t in await host.list_targets()
        if t.name not in exclude and t.max_money > 0
    ]
    ranked = [(w, name) for w, name in ranked if w > 0]
    ranked.sort(key=lambda wn: (-wn[0], wn[1]))
    return [name for _, name in ranked]
