"""
Tests for host primitives: clock, ids, reentrancy guard, parameters, registries
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from ubi_ledger.kernel.errors import ReentrancyDetected
from ubi_ledger.kernel.guard import GuardState, ReentrancyGuard
from ubi_ledger.kernel.ids import generate_id
from ubi_ledger.kernel.parameters import LedgerParameters
from ubi_ledger.kernel.registry import InMemoryHumanityRegistry, SQLiteHumanityRegistry
from ubi_ledger.kernel.time import RealTimeProvider, TestTimeProvider


# =============================================================================
# Time
# =============================================================================


def test_test_time_provider_advances() -> None:
    clock = TestTimeProvider(1_000)

    clock.advance_seconds(30)
    assert clock.now() == 1_030

    clock.advance_days(1)
    assert clock.now() == 1_030 + 86_400


def test_test_time_provider_never_goes_backwards() -> None:
    """The host clock is non-decreasing"""
    clock = TestTimeProvider(1_000)

    clock.set_time(1_000)
    with pytest.raises(ValueError):
        clock.set_time(999)
    assert clock.now() == 1_000


def test_real_time_provider_is_non_decreasing() -> None:
    clock = RealTimeProvider()
    first = clock.now()
    second = clock.now()

    assert first > 0
    assert second >= first


# =============================================================================
# IDs
# =============================================================================


def test_generate_id_is_unique_and_versioned() -> None:
    ids = {generate_id() for _ in range(100)}

    assert len(ids) == 100
    for value in ids:
        assert value[14] == "7"  # UUID version nibble


# =============================================================================
# Reentrancy Guard
# =============================================================================


def test_guard_rejects_nested_entry() -> None:
    guard = ReentrancyGuard()

    with guard.hold("transfer"):
        assert guard.busy
        with pytest.raises(ReentrancyDetected) as exc_info:
            with guard.hold("withdraw_from_streams"):
                pass

    assert exc_info.value.operation == "withdraw_from_streams"
    assert guard.state is GuardState.IDLE


def test_guard_released_when_operation_raises() -> None:
    """Release is guaranteed on every exit path"""
    guard = ReentrancyGuard()

    with pytest.raises(RuntimeError):
        with guard.hold("transfer"):
            raise RuntimeError("boom")

    assert not guard.busy
    with guard.hold("transfer"):
        assert guard.holder == "transfer"


# =============================================================================
# Parameters
# =============================================================================


def test_default_parameters() -> None:
    parameters = LedgerParameters()

    assert parameters.symbol == "UBI"
    assert parameters.decimals == 18
    assert parameters.initial_accrued_per_second > 0


def test_parameters_from_env() -> None:
    parameters = LedgerParameters.from_env(
        {
            "UBI_NAME": "Test Income",
            "UBI_ACCRUED_PER_SECOND": "42",
            "UBI_MAX_STREAMS": "7",
            "UBI_GOVERNOR": "council",
            "UNRELATED": "ignored",
        }
    )

    assert parameters.name == "Test Income"
    assert parameters.initial_accrued_per_second == 42
    assert parameters.initial_max_streams_per_sender == 7
    assert parameters.initial_governor == "council"
    assert parameters.symbol == "UBI"


def test_parameters_reject_zero_rate() -> None:
    with pytest.raises(ValidationError):
        LedgerParameters(initial_accrued_per_second=0)


def test_parameters_are_frozen() -> None:
    parameters = LedgerParameters()
    with pytest.raises(ValidationError):
        parameters.name = "Other"


# =============================================================================
# Registries
# =============================================================================


def test_in_memory_registry() -> None:
    registry = InMemoryHumanityRegistry({"alice"})

    assert registry.is_registered("alice")
    assert not registry.is_registered("bob")

    registry.register("bob")
    registry.remove("alice")
    registry.remove("nobody")

    assert registry.is_registered("bob")
    assert not registry.is_registered("alice")


def test_sqlite_registry_persists(temp_db: Path) -> None:
    registry = SQLiteHumanityRegistry(temp_db)
    registry.register("alice")
    registry.register("bob")
    registry.register("alice")

    reopened = SQLiteHumanityRegistry(temp_db)
    assert reopened.is_registered("alice")
    assert reopened.list_humans() == ["alice", "bob"]

    reopened.remove("alice")
    assert not registry.is_registered("alice")
