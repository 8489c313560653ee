"""Tests for the hacking-experience grinder."""
import asyncio

import pytest

from hgw.game import constants as C
from hgw.game.actions import Action
from hgw.game.errors import BankruptTargetError, InvariantViolation
from hgw.game.xp_grinder import XpGrinder


# ── Helpers ──────────────────────────────────────────────────────────────────

def _grinder(host, config, clock, target=C.JOES, candidates=None):
    return XpGrinder(host, target, config, candidates=candidates, sleep=clock.sleep, clock=clock)


async def _until(predicate, limit=1000):
    for _ in range(limit):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


# ── Grinding ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_preps_with_wg_then_grows_every_second(host, config, clock):
    host.add(C.JOES, security=3, min_security=1, money=500, max_money=1000)
    host.add("w", max_ram=64)
    host.durations[Action.GROW] = 500.0
    grinder = _grinder(host, config, clock)

    task = asyncio.create_task(grinder.run())
    await _until(lambda: grinder.stats.cycles >= 3)
    grinder.stop()
    waves = await task

    assert waves == grinder.stats.cycles
    assert host.launches[0].action is Action.WEAKEN
    tail = host.launches[-3:]
    assert [l.action for l in tail] == [Action.GROW] * 3
    assert [b.at_ms - a.at_ms for a, b in zip(tail, tail[1:])] == [1000.0, 1000.0]
    assert all(l.threads == 36 for l in tail)
    assert grinder.stats.exp_gained > 0


@pytest.mark.asyncio
async def test_waves_do_not_wait_for_grows_to_finish(host, config, clock):
    host.add(C.JOES, security=1, min_security=1, money=1000, max_money=1000)
    host.add("w1", max_ram=32)
    grinder = _grinder(host, config, clock)

    assert await grinder.wave() == 18
    assert clock.sleeps == []
    # RAM is still held by the first wave.
    assert await grinder.wave() == 0

    host.add("w2", max_ram=16)
    assert await grinder.wave() == 9
    assert grinder.stats.cycles == 3
    assert grinder.stats.last_threads == 9


@pytest.mark.asyncio
async def test_wave_roots_new_servers_first(host, config, clock):
    host.add(C.JOES, security=1, min_security=1, money=1000, max_money=1000)
    host.add("locked", max_ram=16, has_root=False)
    host.add("sealed", max_ram=16, has_root=False, rootable=False)

    threads = await _grinder(host, config, clock).wave()

    assert threads == 9
    assert host.servers["locked"].has_root
    assert {l.worker for l in host.launches} == {"locked"}


@pytest.mark.asyncio
async def test_candidates_restrict_the_workers(host, config, clock):
    host.add(C.JOES, security=1, min_security=1, money=1000, max_money=1000)
    host.add("mine", max_ram=16)
    host.add("theirs", max_ram=16)

    await _grinder(host, config, clock, candidates=["mine"]).wave()

    assert {l.worker for l in host.launches} == {"mine"}


# ── Refusals ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_bankrupt_target_is_refused(host, config, clock):
    host.add("CSEC", max_money=0)
    host.add("w", max_ram=64)

    with pytest.raises(BankruptTargetError):
        await _grinder(host, config, clock, target="CSEC").run()
    assert host.launches == []


def test_home_is_not_a_target(host, config, clock):
    with pytest.raises(InvariantViolation):
        _grinder(host, config, clock, target=C.HOME)
