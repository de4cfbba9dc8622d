"""
Tests for the Delegation Accountant

The accountant is what keeps a sender's own accrual and its streams'
accrual from claiming the same second. These tests drive it directly on a
LedgerState, without the facade.
"""

import pytest

from ubi_ledger.kernel.registry import InMemoryHumanityRegistry
from ubi_ledger.state import LedgerState
from ubi_ledger.stream.accounting import (
    delegated_rate,
    delegated_seconds,
    minted_unwithdrawn_value,
    outgoing_delegated_value,
    overlaps_with,
    stream_accrued,
    stream_delta,
)
from ubi_ledger.stream.models import Stream
from ubi_ledger.stream.store import StreamStore


@pytest.fixture
def humans() -> InMemoryHumanityRegistry:
    return InMemoryHumanityRegistry({"alice"})


@pytest.fixture
def streaming_state(state: LedgerState) -> LedgerState:
    """alice accrues from 1000 and streams 3/s to bob over [1100, 1200]"""
    state.account_for_update("alice").accrual_checkpoint = 1_000
    StreamStore(state.streams).create("alice", "bob", 3, 1_100, 1_200)
    return state


# =============================================================================
# Overlap
# =============================================================================


@pytest.mark.parametrize(
    "a, b, c, d, expected",
    [
        (1, 10, 5, 20, True),
        (1, 10, 10, 20, True),  # touching endpoints overlap
        (1, 10, 11, 20, False),
        (1, 10, 2, 3, True),  # containment
        (5, 6, 1, 4, False),
    ],
)
def test_overlaps_with_is_symmetric(a: int, b: int, c: int, d: int, expected: bool) -> None:
    assert overlaps_with(a, b, c, d) is expected
    assert overlaps_with(c, d, a, b) is expected


# =============================================================================
# Stream Delta
# =============================================================================


def make_stream(checkpoint: int = 0) -> Stream:
    return Stream(
        stream_id=1,
        sender="alice",
        recipient="bob",
        rate_per_second=3,
        start_time=1_100,
        stop_time=1_200,
        accrued_checkpoint=checkpoint,
    )


def test_stream_delta_before_start_is_zero() -> None:
    assert stream_delta(make_stream(), 1_050) == 0
    assert stream_delta(make_stream(), 1_100) == 0


def test_stream_delta_inside_window() -> None:
    assert stream_delta(make_stream(), 1_150) == 50
    assert stream_delta(make_stream(checkpoint=1_120), 1_150) == 30


def test_stream_delta_caps_at_stop() -> None:
    assert stream_delta(make_stream(), 5_000) == 100
    assert stream_delta(make_stream(checkpoint=1_200), 5_000) == 0


def test_delegated_seconds_start_after_sender_checkpoint() -> None:
    stream = make_stream()

    assert delegated_seconds(stream, 1_000, 1_150) == 50
    assert delegated_seconds(stream, 1_130, 1_150) == 20
    assert delegated_seconds(stream, 1_300, 1_350) == 0


# =============================================================================
# Partitioning
# =============================================================================


def test_stream_and_sender_partition_accrual(
    streaming_state: LedgerState, humans: InMemoryHumanityRegistry
) -> None:
    """Sender keeps 10/s minus 3/s inside the window; the stream gets the 3/s"""
    stream = StreamStore(streaming_state.streams).require(1)
    now = 1_150

    gross = 10 * (now - 1_000)
    owed = outgoing_delegated_value(streaming_state, "alice", now, humans)
    paid = stream_accrued(streaming_state, stream, now, humans)

    assert owed == paid == 150
    assert gross - owed == 1_350


def test_stream_frozen_when_sender_unregistered(streaming_state: LedgerState) -> None:
    stream = StreamStore(streaming_state.streams).require(1)
    nobody = InMemoryHumanityRegistry()

    assert stream_accrued(streaming_state, stream, 1_150, nobody) == 0
    assert outgoing_delegated_value(streaming_state, "alice", 1_150, nobody) == 0


def test_delegated_rate_counts_active_streams_only(streaming_state: LedgerState) -> None:
    assert delegated_rate(streaming_state, "alice", 1_099) == 0
    assert delegated_rate(streaming_state, "alice", 1_100) == 3
    assert delegated_rate(streaming_state, "alice", 1_200) == 0


def test_minted_unwithdrawn_value_follows_sender_checkpoint(
    streaming_state: LedgerState,
) -> None:
    """Only the part of the window before the sender's checkpoint is minted"""
    assert minted_unwithdrawn_value(streaming_state) == 0

    streaming_state.accounts["alice"].accrual_checkpoint = 1_150
    assert minted_unwithdrawn_value(streaming_state) == 150

    StreamStore(streaming_state.streams).set_checkpoint(1, 1_140)
    assert minted_unwithdrawn_value(streaming_state) == 30
