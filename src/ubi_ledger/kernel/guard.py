"""
Reentrancy guard for mutating ledger operations

A mutation works on a private copy of the ledger state and commits it at
the end. A nested mutation started from inside it (for example by a
registry callback calling back into the ledger) would commit a state the
outer operation then overwrites, so nested entry is rejected outright.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from ubi_ledger.kernel.errors import ReentrancyDetected


class GuardState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"


class ReentrancyGuard:
    """Two-state lock: idle or busy"""

    def __init__(self) -> None:
        self.state = GuardState.IDLE
        self.holder: str | None = None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        """
        Mark the guard busy for the duration of one operation

        Raises:
            ReentrancyDetected: If another operation already holds the guard
        """
        if self.state is GuardState.BUSY:
            raise ReentrancyDetected(operation)
        self.state = GuardState.BUSY
        self.holder = operation
        try:
            yield
        finally:
            self.state = GuardState.IDLE
            self.holder = None

    @property
    def busy(self) -> bool:
        return self.state is GuardState.BUSY
