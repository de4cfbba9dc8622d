"""
Delegation Accountant - Partitioning a sender's accrual between sender and streams

A sender accrues `accrued_per_second` for every second since their
checkpoint. Each stream claims `rate_per_second` for every second of its
window it has not yet withdrawn. The two views overlap, and this module is
what keeps them from both claiming the same second:

    time ->   start          sender checkpoint            now      stop
    stream     |=============|==============================|
               paid by stream  excluded from sender accrual
               (already taken  (outgoing delegated value)
               out of sender's
               settled balance
               at reconcile)

Whenever the sender is reconciled, the stream's share of the seconds since
the sender's checkpoint is subtracted from what the sender materializes.
When the stream is later withdrawn, it pays exactly the seconds since its
own checkpoint. Every second is therefore claimed once: by the sender if no
stream covers it, by the stream otherwise.

Fun fact: This is the same bookkeeping trick as a sweep-line over
intervals - only the boundaries ever get stored, never the seconds.
"""

from ubi_ledger.kernel.registry import HumanityRegistry
from ubi_ledger.state import LedgerState
from ubi_ledger.stream.models import Stream
from ubi_ledger.stream.store import StreamStore
from ubi_ledger.token.accrual import accrued, is_accruing


def overlaps_with(start_a: int, stop_a: int, start_b: int, stop_b: int) -> bool:
    """
    True if closed windows [start_a, stop_a] and [start_b, stop_b] overlap

    Touching endpoints count as overlap.

    Example:
        >>> overlaps_with(1, 10, 10, 20)
        True
        >>> overlaps_with(1, 10, 11, 20)
        False
    """
    return start_a <= stop_b and stop_a >= start_b


def stream_delta(stream: Stream, now: int) -> int:
    """
    Seconds currently withdrawable from a stream

    0 before the window opens and once the stream is fully consumed.
    """
    if now < stream.start_time or stream.is_consumed:
        return 0
    return max(0, min(stream.stop_time, now) - stream.effective_start)


def stream_accrued(
    state: LedgerState, stream: Stream, now: int, registry: HumanityRegistry
) -> int:
    """
    Value currently withdrawable from a stream

    Frozen at 0 while the sender's own accrual is not live (registration
    lapsed or removal reported); resumes from the stream's own checkpoint
    if the sender's accrual does.
    """
    if not is_accruing(state, stream.sender, registry):
        return 0
    return stream_delta(stream, now) * stream.rate_per_second


def delegated_seconds(stream: Stream, sender_checkpoint: int, now: int) -> int:
    """
    Seconds of a stream's withdrawable window that fall after the sender's checkpoint

    Seconds before the checkpoint were already excluded from the sender's
    balance when the sender was last reconciled.
    """
    if now < stream.start_time or stream.is_consumed:
        return 0
    start = max(stream.effective_start, sender_checkpoint)
    end = min(stream.stop_time, now)
    return max(0, end - start)


def outgoing_delegated_value(
    state: LedgerState, account: str, now: int, registry: HumanityRegistry
) -> int:
    """
    Part of the account's pending self-accrual already owed to its streams

    Zero while the account's accrual is not live, matching the freeze of
    both self-accrual and stream accrual.
    """
    if not is_accruing(state, account, registry):
        return 0
    checkpoint = state.get_account(account).accrual_checkpoint
    return sum(
        accrued(stream.rate_per_second, 0, delegated_seconds(stream, checkpoint, now))
        for stream in StreamStore(state.streams).streams_of(account)
    )


def delegated_rate(state: LedgerState, account: str, now: int) -> int:
    """Sum of the rates of the account's streams whose window contains now"""
    return sum(
        stream.rate_per_second
        for stream in StreamStore(state.streams).streams_of(account)
        if stream.start_time <= now < stream.stop_time
    )


def minted_unwithdrawn_value(state: LedgerState) -> int:
    """
    Stream value already counted in total supply but not yet paid out

    Reconciling a sender mints its full accrual into total supply, while
    the streams' share stays unpaid until withdrawn. This is the gap
    between total supply and the sum of settled balances.
    """
    total = 0
    for stream in state.streams.streams.values():
        checkpoint = state.get_account(stream.sender).accrual_checkpoint
        end = min(stream.stop_time, checkpoint)
        total += accrued(stream.rate_per_second, stream.effective_start, end)
    return total
