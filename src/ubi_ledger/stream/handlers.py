"""
Stream Module Handlers - Stream Lifecycle Engine

Create validates every rule before the store allocates anything. Withdraw
reconciles the sender first, so the seconds the stream pays out are the
same seconds excluded from the sender's own accrual. Cancel is a withdraw
followed by a delete.
"""

from ubi_ledger.kernel.context import OperationContext
from ubi_ledger.kernel.errors import NotStreamParty, StreamNotYetAccruing
from ubi_ledger.kernel.events import stream_subject
from ubi_ledger.kernel.parameters import LedgerParameters
from ubi_ledger.state import LedgerState
from ubi_ledger.stream.accounting import stream_accrued
from ubi_ledger.stream.commands import CancelStream, CreateStream, WithdrawFromStreams
from ubi_ledger.stream.events import StreamCancelled, StreamCreated, StreamWithdrawn
from ubi_ledger.stream.invariants import (
    validate_capacity,
    validate_no_overlap,
    validate_not_circular,
    validate_stream_preconditions,
)
from ubi_ledger.stream.models import Stream
from ubi_ledger.stream.store import StreamStore
from ubi_ledger.token.accrual import is_accruing
from ubi_ledger.token.handlers import reconcile_account, settle_frozen_stream

Context = OperationContext[LedgerState]


class StreamCommandHandlers:
    """Command handlers for the stream lifecycle"""

    def __init__(self, parameters: LedgerParameters) -> None:
        self.parameters = parameters

    def handle_create_stream(self, ctx: Context, command: CreateStream) -> Stream:
        """
        Create a stream from the caller to command.recipient

        Returns:
            The stored stream, carrying its new id

        Raises:
            InvalidStream: First violated precondition (see invariants)
            OverlappingStream: Same-pair stream overlaps the window
            CircularDelegation: Reverse stream overlaps the window
            DelegationExceedsCapacity: Overlapping rates exceed the accrual rate
        """
        state = ctx.state
        sender = ctx.caller
        store = StreamStore(state.streams)

        validate_stream_preconditions(
            sender=sender,
            sender_accruing=is_accruing(state, sender, ctx.registry),
            recipient=command.recipient,
            contract_address=self.parameters.contract_address,
            rate_per_second=command.rate_per_second,
            start_time=command.start_time,
            stop_time=command.stop_time,
            now=ctx.now,
            accrued_per_second=state.accrued_per_second,
            sender_stream_count=store.count(sender),
            max_streams_per_sender=state.max_streams_per_sender,
        )
        validate_no_overlap(
            store, sender, command.recipient, command.start_time, command.stop_time
        )
        validate_not_circular(
            store, sender, command.recipient, command.start_time, command.stop_time
        )
        validate_capacity(
            store,
            sender,
            command.rate_per_second,
            command.start_time,
            command.stop_time,
            state.accrued_per_second,
        )

        stream = store.create(
            sender,
            command.recipient,
            command.rate_per_second,
            command.start_time,
            command.stop_time,
        )
        ctx.emit(
            stream_subject(stream.stream_id),
            StreamCreated(
                stream_id=stream.stream_id,
                sender=stream.sender,
                recipient=stream.recipient,
                rate_per_second=stream.rate_per_second,
                start_time=stream.start_time,
                stop_time=stream.stop_time,
            ),
        )
        return stream

    def withdraw(self, ctx: Context, stream: Stream) -> int:
        """
        Pay a stream's withdrawable value to its recipient

        While the sender's accrual is frozen nothing is paid and the stream
        is left as is; it resumes from its own checkpoint if the sender's
        accrual does.

        Returns:
            The amount paid
        """
        if not is_accruing(ctx.state, stream.sender, ctx.registry):
            return 0

        store = StreamStore(ctx.state.streams)
        amount = stream_accrued(ctx.state, stream, ctx.now, ctx.registry)
        reconcile_account(ctx, stream.sender)
        ctx.state.account_for_update(stream.recipient).settled_balance += amount

        checkpoint = min(ctx.now, stream.stop_time)
        store.set_checkpoint(stream.stream_id, checkpoint)
        deleted = ctx.now >= stream.stop_time
        if deleted:
            store.delete(stream.stream_id)

        ctx.emit(
            stream_subject(stream.stream_id),
            StreamWithdrawn(
                stream_id=stream.stream_id,
                recipient=stream.recipient,
                amount=amount,
                accrued_checkpoint=checkpoint,
                deleted=deleted,
            ),
        )
        return amount

    def handle_withdraw_from_streams(
        self, ctx: Context, command: WithdrawFromStreams
    ) -> int:
        """
        Withdraw from each listed stream; anyone may trigger it

        The whole list is one unit: if any id fails, nothing is paid.

        Returns:
            Total amount paid across the listed streams

        Raises:
            StreamNotFound: An id is unknown or already deleted
            StreamNotYetAccruing: A stream's window has not opened
        """
        store = StreamStore(ctx.state.streams)
        total = 0
        for stream_id in command.stream_ids:
            stream = store.require(stream_id)
            if ctx.now < stream.start_time:
                raise StreamNotYetAccruing(stream_id, stream.start_time, ctx.now)
            total += self.withdraw(ctx, stream)
        return total

    def handle_cancel_stream(self, ctx: Context, command: CancelStream) -> int:
        """
        Settle and delete a stream

        A frozen sender's stream is paid only what was minted for it
        before the sender's checkpoint.

        Returns:
            The amount paid to the recipient on the way out

        Raises:
            StreamNotFound: The stream does not exist
            NotStreamParty: The caller is neither sender nor recipient
        """
        store = StreamStore(ctx.state.streams)
        stream = store.require(command.stream_id)
        if not stream.involves(ctx.caller):
            raise NotStreamParty(command.stream_id, ctx.caller)

        paid = 0
        if not is_accruing(ctx.state, stream.sender, ctx.registry):
            paid = settle_frozen_stream(ctx, stream, stream.accrued_checkpoint)
        elif ctx.now >= stream.start_time and not stream.is_consumed:
            paid = self.withdraw(ctx, stream)
        if store.exists(command.stream_id):
            store.delete(command.stream_id)

        ctx.emit(
            stream_subject(command.stream_id),
            StreamCancelled(
                stream_id=stream.stream_id,
                sender=stream.sender,
                recipient=stream.recipient,
                cancelled_by=ctx.caller,
            ),
        )
        return paid
