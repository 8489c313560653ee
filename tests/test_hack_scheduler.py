"""Tests for the sequential hack scheduler."""
import pytest

from hgw.game.actions import Action
from hgw.game.errors import BankruptTargetError, InvariantViolation
from hgw.game.hack_scheduler import HackScheduler, allocate, required_threads
from hgw.game.prep import Strategy


# ── Helpers ──────────────────────────────────────────────────────────────────

def _scheduler(host, config, clock, target="t", fraction=0.5, **kw):
    return HackScheduler(
        host, target, fraction, config, sleep=clock.sleep, clock=clock, **kw,
    )


def _stop_after(n):
    """Abandon callback that ends the run after *n* cycles."""
    count = 0

    async def abandon():
        nonlocal count
        count += 1
        return count >= n

    return abandon


# ── Thread planning ──────────────────────────────────────────────────────────

def test_required_threads():
    assert required_threads(0.5, 0.01) == 50
    assert required_threads(0.5, 0.03) == 17
    assert required_threads(1.0, 1.0) == 1


def test_required_threads_with_useless_hack():
    assert required_threads(0.5, 0.0) == 0


@pytest.mark.parametrize("fraction", [0, -0.1, 1.5])
def test_required_threads_rejects_bad_fraction(fraction):
    with pytest.raises(InvariantViolation):
        required_threads(fraction, 0.01)


def test_allocate_fills_largest_worker_first():
    assert allocate({"a": 10, "b": 30, "c": 20}, 45) == {"b": 30, "c": 15}


def test_allocate_is_capacity_capped():
    assert allocate({"a": 25, "b": 15}, 50) == {"a": 25, "b": 15}


def test_allocate_skips_empty_workers():
    assert allocate({"a": 0, "b": 5}, 3) == {"b": 3}
    assert allocate({}, 10) == {}
    assert allocate({"a": 5}, 0) == {}


def test_scheduler_rejects_bad_fraction(host, config, clock):
    host.add("t", max_money=100)
    with pytest.raises(InvariantViolation):
        _scheduler(host, config, clock, fraction=0)


# ── Cycles ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_partial_allocation_still_hacks(host, config, clock):
    """50 threads needed, 40 available: hack with 40 and steal about 40%."""
    t = host.add("t", security=1, min_security=1, money=1000, max_money=1000)
    host.add("w", max_ram=68.5)

    result = await _scheduler(host, config, clock).cycle()

    assert result.threads_required == 50
    assert result.threads_allocated == 40
    assert result.money_stolen == pytest.approx(400)
    assert t.money == pytest.approx(600)
    assert host.actions() == [Action.HACK]


@pytest.mark.asyncio
async def test_cycle_preps_before_hacking(host, config, clock):
    host.add("t", security=3, min_security=1, money=100, max_money=1000)
    host.add("w", max_ram=256)

    result = await _scheduler(host, config, clock, strategy=Strategy.GW).cycle()

    actions = host.actions()
    assert actions[-1] == Action.HACK
    assert Action.HACK not in actions[:-1]
    assert result.prep.dispatches == len(actions) - 1
    assert result.exp_gained > 0


@pytest.mark.asyncio
async def test_empty_botnet_backs_off(host, config, clock):
    host.add("t", security=1, min_security=1, money=1000, max_money=1000)

    result = await _scheduler(host, config, clock).cycle()

    assert result.dispatch.is_noop
    assert result.money_stolen == 0
    assert host.launches == []
    assert clock.sleeps == [config.empty_botnet_delay_ms / 1000]


@pytest.mark.asyncio
async def test_hack_spreads_over_workers(host, config, clock):
    host.add("t", security=1, min_security=1, money=1000, max_money=1000)
    host.add("a", max_ram=34)
    host.add("b", max_ram=51)

    result = await _scheduler(host, config, clock).cycle()

    assert result.dispatch.threads == {"b": 30, "a": 20}


# ── Run loop ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_bankrupt_target_rejected_before_dispatching(host, config, clock):
    host.add("t", security=5, min_security=1, money=0, max_money=0)
    host.add("w", max_ram=64)

    with pytest.raises(BankruptTargetError):
        await _scheduler(host, config, clock).run()
    assert host.launches == []


@pytest.mark.asyncio
async def test_dispatches_never_overlap(host, config, clock):
    host.add("t", security=4, min_security=1, money=200, max_money=1000)
    host.add("a", max_ram=64)
    host.add("b", max_ram=32)

    cycles = await _scheduler(host, config, clock, abandon=_stop_after(4)).run()

    assert cycles == 4
    groups: dict[float, list] = {}
    for launch in host.launches:
        groups.setdefault(launch.at_ms, []).append(launch)
    starts = sorted(groups)
    assert len(starts) > 4
    for prev, nxt in zip(starts, starts[1:]):
        assert nxt >= max(l.finish_ms for l in groups[prev])


@pytest.mark.asyncio
async def test_stop_before_run_does_nothing(host, config, clock):
    host.add("t", security=1, min_security=1, money=1000, max_money=1000)
    host.add("w", max_ram=64)
    scheduler = _scheduler(host, config, clock)

    scheduler.stop()
    assert await scheduler.run() == 0
    assert host.launches == []


@pytest.mark.asyncio
async def test_stop_lets_the_cycle_in_flight_finish(host, config, clock):
    host.add("t", security=1, min_security=1, money=1000, max_money=1000)
    host.add("w", max_ram=64)
    sleep = clock.sleep
    holder = {}

    async def sleep_then_stop(seconds):
        holder["scheduler"].stop()
        await sleep(seconds)

    clock.sleep = sleep_then_stop
    scheduler = _scheduler(host, config, clock)
    holder["scheduler"] = scheduler

    assert await scheduler.run() == 1
    assert scheduler.stopping
    assert host.actions() == [Action.HACK]
    assert not await host.is_running(host.launches[0].pid)


@pytest.mark.asyncio
async def test_stats_accumulate(host, config, clock):
    host.add("t", security=1, min_security=1, money=1000, max_money=1000)
    host.add("w", max_ram=128)
    scheduler = _scheduler(host, config, clock, abandon=_stop_after(3))

    await scheduler.run()

    assert scheduler.stats.cycles == 3
    assert scheduler.stats.money_stolen == pytest.approx(host.money)
    assert scheduler.stats.last_threads == 50
