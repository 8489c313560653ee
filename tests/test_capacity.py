"""Tests for the worker capacity model."""
import pytest

from hgw.game import constants as C
from hgw.game.capacity import free_ram, threads
from hgw.game.errors import InvariantViolation
from hgw.game.host import Worker


def test_threads_floor_division():
    w = Worker("w", max_ram=16, ram_used=0, has_root=True)
    assert threads(w, C.SCRIPT_RAM[C.SCRIPT_WEAKEN]) == 9
    assert threads(w, C.SCRIPT_RAM[C.SCRIPT_HACK]) == 9
    assert threads(w, 2.0) == 8


def test_threads_accounts_for_used_ram():
    w = Worker("w", max_ram=16, ram_used=12, has_root=True)
    assert threads(w, 2.0) == 2


def test_threads_never_negative():
    """A worker using more RAM than it has contributes 0 threads."""
    w = Worker("w", max_ram=8, ram_used=10, has_root=True)
    assert free_ram(w) < 0
    assert threads(w, 1.75) == 0


def test_threads_zero_when_script_does_not_fit():
    w = Worker("tiny", max_ram=1, ram_used=0, has_root=True)
    assert threads(w, 1.75) == 0


def test_home_reserve_only_applies_to_home():
    home = Worker(C.HOME, max_ram=128, ram_used=0, has_root=True, is_home=True)
    other = Worker("w", max_ram=128, ram_used=0, has_root=True)
    assert free_ram(home, 64) == 64
    assert free_ram(other, 64) == 128
    assert threads(home, 2.0, home_reserve=64) == 32
    assert threads(other, 2.0, home_reserve=64) == 64


def test_home_smaller_than_reserve_has_no_capacity():
    home = Worker(C.HOME, max_ram=32, ram_used=0, has_root=True, is_home=True)
    assert threads(home, 1.75, home_reserve=64) == 0


@pytest.mark.parametrize("max_ram,used", [(0, 0), (4, 0), (16, 3.5), (64, 70), (1024, 0)])
def test_threads_non_increasing_in_cost(max_ram, used):
    w = Worker("w", max_ram=max_ram, ram_used=used, has_root=True)
    costs = [0.5, 1.0, 1.7, 1.75, 2.0, 4.0, 16.0, 2048.0]
    counts = [threads(w, cost) for cost in costs]
    assert all(n >= 0 for n in counts)
    assert counts == sorted(counts, reverse=True)


@pytest.mark.parametrize("cost", [0, -1.0])
def test_non_positive_script_ram_is_an_invariant_violation(cost):
    w = Worker("w", max_ram=16, ram_used=0, has_root=True)
    with pytest.raises(InvariantViolation):
        threads(w, cost)
