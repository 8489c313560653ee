"""Action table -- the three HGW actions and their formulas.

Each action maps to one script, one RAM cost per thread, a duration function
and a potency function.  Durations depend on the target's *current* security
and the player's hacking skill, so they are recomputed at every dispatch.

Potency is the per-thread effect of an action:

- ``HACK``: fraction of the target's current money removed by one thread.
- ``GROW``: growth factor minus one contributed by one thread.
- ``WEAKEN``: security removed by one thread.
"""
import enum
import math
from dataclasses import dataclass
from typing import Callable

from hgw.game import constants as C


class Action(str, enum.Enum):
    GROW = "grow"
    HACK = "hack"
    WEAKEN = "weaken"


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------


def hack_time(security: float, required_skill: int, skill: int) -> float:
    """Milliseconds one hack takes against a target at *security*."""
    skill = max(skill, 1)
    difficulty = required_skill * security
    skill_factor = (C.HACK_DIFFICULTY_FACTOR * difficulty + C.HACK_BASE_DIFFICULTY)
    skill_factor /= skill + C.HACK_BASE_SKILL
    return C.HACK_TIME_MULTIPLIER * skill_factor * 1000


def grow_time(security: float, required_skill: int, skill: int) -> float:
    return C.GROW_TIME_MULTIPLIER * hack_time(security, required_skill, skill)


def weaken_time(security: float, required_skill: int, skill: int) -> float:
    return C.WEAKEN_TIME_MULTIPLIER * hack_time(security, required_skill, skill)


def hack_percent(security: float, required_skill: int, skill: int) -> float:
    """Fraction of money one hack thread steals, clamped to [0, 1]."""
    skill = max(skill, 1)
    difficulty_mult = (C.MAX_SECURITY - security) / C.MAX_SECURITY
    skill_mult = (skill - (required_skill - 1)) / skill
    percent = difficulty_mult * skill_mult / C.HACK_BALANCE_FACTOR
    return min(max(percent, 0.0), 1.0)


def growth_rate(security: float) -> float:
    """Per-cycle growth rate before the server's growth parameter applies."""
    rate = 1 + (C.SERVER_BASE_GROWTH_RATE - 1) / max(security, 1e-9)
    return min(rate, C.SERVER_MAX_GROWTH_RATE)


def grow_multiplier(security: float, growth: float, threads: int) -> float:
    return growth_rate(security) ** (growth / 100 * threads)


def grow_potency(security: float, growth: float) -> float:
    return grow_multiplier(security, growth, 1) - 1


def exp_per_thread(min_security: float) -> float:
    return C.EXP_BASE + min_security * C.EXP_DIFFICULTY_FACTOR


def skill_from_exp(exp: float) -> int:
    """Hacking skill reached with *exp* experience points."""
    return max(math.floor(32 * math.log(exp + 534.6) - 200), 1)


# ---------------------------------------------------------------------------
# Action table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActionSpec:
    script: str
    duration: Callable[[float, int, int], float]

    @property
    def ram(self) -> float:
        return C.SCRIPT_RAM[self.script]


ACTIONS: dict[Action, ActionSpec] = {
    Action.GROW: ActionSpec(script=C.SCRIPT_GROW, duration=grow_time),
    Action.HACK: ActionSpec(script=C.SCRIPT_HACK, duration=hack_time),
    Action.WEAKEN: ActionSpec(script=C.SCRIPT_WEAKEN, duration=weaken_time),
}


def script_for(action: Action) -> str:
    return ACTIONS[action].script


def potency(
    action: Action,
    security: float,
    required_skill: int,
    skill: int,
    growth: float = 0.0,
) -> float:
    """Per-thread effect of *action*; see the module docstring for units."""
    if action is Action.HACK:
        return hack_percent(security, required_skill, skill)
    if action is Action.GROW:
        return grow_potency(security, growth)
    return C.WEAKEN_SECURITY_PER_THREAD
