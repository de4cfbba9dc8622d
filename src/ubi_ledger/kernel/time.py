"""
Time provider abstraction for deterministic testing

The ledger measures accrual in whole seconds since the Unix epoch.
Production reads the system clock; tests freeze and advance it.

Fun fact: Unix time ignores leap seconds entirely - every day is exactly
86400 seconds long, which is precisely what a per-second accrual rate wants!
"""

import time
from typing import Protocol


class TimeProvider(Protocol):
    """Protocol for time providers - allows deterministic testing"""

    def now(self) -> int:
        """Return current time as integer seconds since the epoch"""
        ...


class RealTimeProvider:
    """Production time provider using system clock"""

    def __init__(self) -> None:
        self._last = 0

    def now(self) -> int:
        """Return current system time, never earlier than a previous reading"""
        self._last = max(self._last, int(time.time()))
        return self._last


class TestTimeProvider:
    """
    Controllable time provider for deterministic tests

    Allows tests to freeze time and advance it. Time never moves
    backwards, matching the host clock guarantee.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, initial_time: int = 1) -> None:
        """
        Initialize with optional fixed time

        Args:
            initial_time: Starting time in seconds (defaults to 1, since 0
                means "not accruing" for account checkpoints)
        """
        self._current_time = initial_time

    def now(self) -> int:
        """Return current test time"""
        return self._current_time

    def set_time(self, timestamp: int) -> None:
        """Set current time to a specific value (must not go backwards)"""
        if timestamp < self._current_time:
            raise ValueError(
                f"Clock cannot move backwards ({timestamp} < {self._current_time})"
            )
        self._current_time = timestamp

    def advance_seconds(self, seconds: int) -> None:
        """Advance time by specified seconds"""
        self.set_time(self._current_time + seconds)

    def advance_days(self, days: int) -> None:
        """Advance time by specified days"""
        self.advance_seconds(days * 86400)
