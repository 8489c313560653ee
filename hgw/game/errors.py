"""Invariant violations raised by the schedulers.

Capacity shortfalls and drifted targets are expected and resolved by looping;
only logic defects in the caller end up here.
"""


class InvariantViolation(AssertionError):
    """A scheduler was asked to do something that can never be valid."""


class BankruptTargetError(InvariantViolation):
    """The target can hold no money, so there is nothing to grow or hack."""

    def __init__(self, target: str) -> None:
        super().__init__(f"Target {target} is bankrupt (max money is 0)")
        self.target = target


def require(condition: bool, message: str) -> None:
    """Raise :class:`InvariantViolation` with *message* unless *condition*."""
    if not condition:
        raise InvariantViolation(message)
