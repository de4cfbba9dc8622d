"""
Pytest configuration and shared fixtures

Fun fact: The name "conftest" comes from pytest's configuration testing
framework. Files named conftest.py are automatically discovered and their
fixtures are available to all tests in the same directory and subdirectories!
"""

import tempfile
from pathlib import Path
from typing import Iterator

import pytest

from ubi_ledger.kernel.parameters import LedgerParameters
from ubi_ledger.kernel.registry import InMemoryHumanityRegistry
from ubi_ledger.kernel.time import TestTimeProvider
from ubi_ledger.ledger import UBILedger
from ubi_ledger.state import LedgerState

# 2025-01-15 12:00:00 UTC
T0 = 1_736_942_400


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "ubi.db"


@pytest.fixture
def test_time() -> TestTimeProvider:
    """
    Provide a controllable clock for deterministic tests

    Starts at a real-looking timestamp: 0 would read as "not accruing"
    when stored as a checkpoint.
    """
    return TestTimeProvider(T0)


@pytest.fixture
def parameters() -> LedgerParameters:
    """
    Ledger parameters with a small accrual rate

    10 units per second keeps expected balances readable in assertions.
    """
    return LedgerParameters(
        initial_accrued_per_second=10,
        initial_max_streams_per_sender=3,
        initial_governor="governor",
    )


@pytest.fixture
def registry() -> InMemoryHumanityRegistry:
    """Registry where alice, bob and carol are verified humans"""
    return InMemoryHumanityRegistry({"alice", "bob", "carol"})


@pytest.fixture
def ledger(
    temp_db: Path,
    registry: InMemoryHumanityRegistry,
    parameters: LedgerParameters,
    test_time: TestTimeProvider,
) -> UBILedger:
    """Provide a fresh ledger on a temporary database"""
    return UBILedger(temp_db, registry, parameters=parameters, time_provider=test_time)


@pytest.fixture
def state(parameters: LedgerParameters) -> LedgerState:
    """Genesis state for pure-function tests"""
    return LedgerState.genesis(parameters)
