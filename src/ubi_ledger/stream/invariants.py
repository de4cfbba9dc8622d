"""
Stream Invariants - Rules a new stream must satisfy

Pure validation functions (no side effects), called by the lifecycle
engine before the StreamStore allocates anything. Preconditions are
checked in a fixed order and the first violated rule is the one reported.

These rules are checked at creation only. A later change of the global
accrual rate does not re-validate existing streams.
"""

from ubi_ledger.kernel.errors import (
    CircularDelegation,
    DelegationExceedsCapacity,
    InvalidRate,
    InvalidRecipient,
    InvalidTimeWindow,
    OverlappingStream,
    RateExceedsAccrual,
    SenderNotAccruing,
    StartTimeInPast,
    TooManyStreams,
)
from ubi_ledger.kernel.parameters import ZERO_ACCOUNT
from ubi_ledger.stream.accounting import overlaps_with
from ubi_ledger.stream.store import StreamStore


def validate_stream_preconditions(
    *,
    sender: str,
    sender_accruing: bool,
    recipient: str,
    contract_address: str,
    rate_per_second: int,
    start_time: int,
    stop_time: int,
    now: int,
    accrued_per_second: int,
    sender_stream_count: int,
    max_streams_per_sender: int,
) -> None:
    """
    Check the InvalidStream family of rules, first violation wins

    Raises:
        SenderNotAccruing: Sender is not a registered, accruing human
        InvalidRecipient: Recipient is the zero account, the ledger or the sender
        InvalidRate: Rate is zero
        StartTimeInPast: Window does not start in the future
        InvalidTimeWindow: Window is empty
        RateExceedsAccrual: Rate is above the global accrual rate
        TooManyStreams: Sender already holds the maximum number of streams
    """
    if not sender_accruing:
        raise SenderNotAccruing(sender)

    if recipient in (ZERO_ACCOUNT, contract_address, sender):
        raise InvalidRecipient(recipient)

    if rate_per_second <= 0:
        raise InvalidRate(rate_per_second)

    if start_time <= now:
        raise StartTimeInPast(start_time, now)

    if stop_time <= start_time:
        raise InvalidTimeWindow(start_time, stop_time)

    if rate_per_second > accrued_per_second:
        raise RateExceedsAccrual(rate_per_second, accrued_per_second)

    if sender_stream_count >= max_streams_per_sender:
        raise TooManyStreams(sender, sender_stream_count, max_streams_per_sender)


def validate_no_overlap(
    store: StreamStore, sender: str, recipient: str, start_time: int, stop_time: int
) -> None:
    """
    A sender may hold at most one stream per recipient at any instant

    Raises:
        OverlappingStream: If a live sender->recipient stream overlaps the window
    """
    for stream in store.pair_streams(sender, recipient):
        if overlaps_with(stream.start_time, stream.stop_time, start_time, stop_time):
            raise OverlappingStream(sender, recipient, stream.stream_id)


def validate_not_circular(
    store: StreamStore, sender: str, recipient: str, start_time: int, stop_time: int
) -> None:
    """
    Value may not flow back and forth between two accounts at the same time

    Raises:
        CircularDelegation: If a live recipient->sender stream overlaps the window
    """
    for stream in store.pair_streams(recipient, sender):
        if overlaps_with(stream.start_time, stream.stop_time, start_time, stop_time):
            raise CircularDelegation(sender, recipient, stream.stream_id)


def validate_capacity(
    store: StreamStore,
    sender: str,
    rate_per_second: int,
    start_time: int,
    stop_time: int,
    accrued_per_second: int,
) -> None:
    """
    Overlapping outgoing rates must fit within the sender's accrual rate

    Sums the rates of every live sender stream whose window overlaps the
    new one. Since every pair of streams active at the same instant
    overlap, this bounds the delegated rate at every instant.

    Raises:
        DelegationExceedsCapacity: If the sum plus the new rate exceeds the accrual rate
    """
    delegated = rate_per_second + sum(
        stream.rate_per_second
        for stream in store.streams_of(sender)
        if overlaps_with(stream.start_time, stream.stop_time, start_time, stop_time)
    )
    if delegated > accrued_per_second:
        raise DelegationExceedsCapacity(sender, delegated, accrued_per_second)
