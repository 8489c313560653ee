"""Tests for the target state oracle."""
import pytest

from hgw.game.actions import Action
from hgw.game.errors import InvariantViolation
from hgw.game.oracle import TargetOracle


@pytest.mark.asyncio
async def test_predicates_follow_host_state(host, config):
    t = host.add("t", security=5, min_security=1, money=10, max_money=100)
    oracle = TargetOracle(host, config)

    assert not await oracle.has_min_security("t")
    assert not await oracle.has_max_money("t")
    assert not await oracle.is_prepped("t")

    t.security = 1
    assert await oracle.has_min_security("t")
    assert not await oracle.is_prepped("t")

    t.money = 100
    assert await oracle.has_max_money("t")
    assert await oracle.is_prepped("t")


@pytest.mark.asyncio
async def test_bankrupt(host, config):
    host.add("broke", max_money=0)
    host.add("rich", max_money=1)
    oracle = TargetOracle(host, config)
    assert await oracle.is_bankrupt("broke")
    assert not await oracle.is_bankrupt("rich")


@pytest.mark.asyncio
async def test_wait_time_adds_buffer(host, config):
    host.add("t", max_money=100)
    oracle = TargetOracle(host, config)
    assert await oracle.wait_time("t", Action.WEAKEN) == 4000 + config.buffer_time_ms
    assert await oracle.wait_time("t", Action.HACK) == 1000 + config.buffer_time_ms


@pytest.mark.asyncio
async def test_nothing_is_cached(host, config):
    t = host.add("t", security=5, min_security=1, max_money=100)
    oracle = TargetOracle(host, config)
    assert (await oracle.snapshot("t")).security == 5
    t.security = 3
    assert (await oracle.snapshot("t")).security == 3


# ── Snapshot invariants ──────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("state", [
    {"security": 0.5, "min_security": 1},
    {"security": -2, "min_security": -1},
    {"money": 101, "max_money": 100},
    {"money": -1, "max_money": 100},
])
async def test_impossible_target_state_raises(host, config, state):
    host.add("t", **state)
    oracle = TargetOracle(host, config)

    with pytest.raises(InvariantViolation):
        await oracle.snapshot("t")
    with pytest.raises(InvariantViolation):
        await oracle.is_prepped("t")


@pytest.mark.asyncio
async def test_boundary_states_are_valid(host, config):
    host.add("t", security=0, min_security=0, money=0, max_money=0)
    snap = await TargetOracle(host, config).snapshot("t")
    assert snap.security == snap.min_security == 0
