"""
Token Module Handlers - Ledger Core state transitions

Handlers are the decision-making layer. Each one:
1. Reads the working state from the operation context
2. Validates the operation (raising on the first violation)
3. Mutates the working state and emits events

The host commits the working state only if the handler returns, so a
handler that raises halfway leaves no trace.

The central routine is reconcile_account(): it folds an account's pending
self-accrual into its settled balance, minus what its streams have claimed
in the meantime. Every debit of an account starts with it.
"""

from ubi_ledger.kernel.context import OperationContext
from ubi_ledger.kernel.errors import (
    AllowanceExceeded,
    AllowanceUnderflow,
    AlreadyAccruing,
    ArithmeticUnderflow,
    ExpiredAuthorization,
    InsufficientBalance,
    InvalidAuthorization,
    NotAccruing,
    NotGovernor,
    NotRegistered,
    StillRegistered,
    TransferToZeroAccount,
)
from ubi_ledger.kernel.events import stream_subject
from ubi_ledger.kernel.parameters import ZERO_ACCOUNT, LedgerParameters
from ubi_ledger.state import LedgerState
from ubi_ledger.stream.accounting import outgoing_delegated_value
from ubi_ledger.stream.events import StreamWithdrawn
from ubi_ledger.stream.models import Stream
from ubi_ledger.stream.store import StreamStore
from ubi_ledger.token import events
from ubi_ledger.token.accrual import accrued, is_accruing
from ubi_ledger.token.commands import (
    Approve,
    Burn,
    BurnFrom,
    ChangeAccruedPerSecond,
    ChangeGovernor,
    ChangeRegistry,
    DecreaseAllowance,
    IncreaseAllowance,
    Permit,
    ReportRemoval,
    SetMaxStreamsAllowed,
    StartAccruing,
    Transfer,
    TransferFrom,
)
from ubi_ledger.token.permit import AuthorizationVerifier, domain_separator, permit_digest

Context = OperationContext[LedgerState]


def reconcile_account(ctx: Context, account_id: str) -> int:
    """
    Materialize an account's pending accrual into its settled balance

    In order: compute the value its streams claimed since its checkpoint;
    if accruing, mint the elapsed accrual into total supply and move the
    checkpoint to now; then settle `accrued - delegated`.

    Returns:
        The settled balance after reconciliation

    Raises:
        InsufficientBalance: If delegated value exceeds settled + accrued
            (possible only after the accrual rate was lowered)
    """
    state = ctx.state
    delegated = outgoing_delegated_value(state, account_id, ctx.now, ctx.registry)
    account = state.account_for_update(account_id)

    newly_accrued = 0
    if is_accruing(state, account_id, ctx.registry):
        newly_accrued = accrued(state.accrued_per_second, account.accrual_checkpoint, ctx.now)
        state.total_supply += newly_accrued
        account.accrual_checkpoint = ctx.now

    settled = account.settled_balance + newly_accrued - delegated
    if settled < 0:
        raise InsufficientBalance(account_id, account.settled_balance + newly_accrued, delegated)
    account.settled_balance = settled
    return settled


def debit(ctx: Context, account_id: str, amount: int) -> None:
    """
    Reconcile an account, then take `amount` from its settled balance

    Raises:
        InsufficientBalance: If the reconciled balance is below amount
    """
    available = reconcile_account(ctx, account_id)
    if available < amount:
        raise InsufficientBalance(account_id, available, amount)
    ctx.state.accounts[account_id].settled_balance = available - amount


def settle_frozen_stream(ctx: Context, stream: Stream, checkpoint: int) -> int:
    """
    Pay a frozen sender's stream the value already minted for it

    The seconds between the stream's checkpoint and the sender's own
    checkpoint were minted and taken out of the sender's balance at the
    sender's last reconciliation; they go to the recipient now. The
    stream checkpoint then moves to `checkpoint` (clamped to stop_time),
    and a stream with nothing left is deleted.

    Returns:
        The amount paid to the recipient
    """
    store = StreamStore(ctx.state.streams)
    paid_through = min(
        stream.stop_time, ctx.state.get_account(stream.sender).accrual_checkpoint
    )
    amount = accrued(stream.rate_per_second, stream.effective_start, paid_through)
    ctx.state.account_for_update(stream.recipient).settled_balance += amount

    new_checkpoint = min(
        max(stream.accrued_checkpoint, paid_through, checkpoint), stream.stop_time
    )
    store.set_checkpoint(stream.stream_id, new_checkpoint)
    deleted = new_checkpoint >= stream.stop_time
    if deleted:
        store.delete(stream.stream_id)

    if amount or deleted:
        ctx.emit(
            stream_subject(stream.stream_id),
            StreamWithdrawn(
                stream_id=stream.stream_id,
                recipient=stream.recipient,
                amount=amount,
                accrued_checkpoint=new_checkpoint,
                deleted=deleted,
            ),
        )
    return amount


def spend_allowance(ctx: Context, owner: str, spender: str, amount: int) -> None:
    """
    Consume `amount` of spender's allowance on owner

    Raises:
        AllowanceExceeded: If the allowance is below amount
    """
    current = ctx.state.get_account(owner).allowance(spender)
    if current < amount:
        raise AllowanceExceeded(owner, spender, current, amount)
    ctx.state.account_for_update(owner).allowances[spender] = current - amount


class LedgerCommandHandlers:
    """
    Command handlers for balances, allowances, accrual and administration

    Handlers are stateless apart from their configuration; everything
    mutable arrives through the operation context.
    """

    def __init__(
        self,
        parameters: LedgerParameters,
        verifier: AuthorizationVerifier,
    ) -> None:
        """
        Initialize handlers with dependencies

        Args:
            parameters: Deployment parameters (permit domain)
            verifier: Signature verifier for permits
        """
        self.parameters = parameters
        self.verifier = verifier
        self.domain_separator = domain_separator(parameters)

    # Transfers

    def _transfer(self, ctx: Context, sender: str, recipient: str, amount: int) -> None:
        if recipient == ZERO_ACCOUNT:
            raise TransferToZeroAccount(sender)
        debit(ctx, sender, amount)
        ctx.state.account_for_update(recipient).settled_balance += amount
        ctx.emit(sender, events.Transfer(sender=sender, recipient=recipient, amount=amount))

    def _burn(self, ctx: Context, owner: str, amount: int) -> None:
        debit(ctx, owner, amount)
        if ctx.state.total_supply < amount:
            raise ArithmeticUnderflow("total_supply", ctx.state.total_supply - amount)
        ctx.state.total_supply -= amount
        ctx.emit(owner, events.Transfer(sender=owner, recipient=ZERO_ACCOUNT, amount=amount))

    def handle_transfer(self, ctx: Context, command: Transfer) -> bool:
        self._transfer(ctx, ctx.caller, command.recipient, command.amount)
        return True

    def handle_transfer_from(self, ctx: Context, command: TransferFrom) -> bool:
        """
        Transfer on behalf of an owner

        The allowance is consumed before the owner is debited, so an
        unapproved spender learns nothing about the owner's balance.
        """
        spend_allowance(ctx, command.owner, ctx.caller, command.amount)
        self._transfer(ctx, command.owner, command.recipient, command.amount)
        return True

    def handle_burn(self, ctx: Context, command: Burn) -> None:
        self._burn(ctx, ctx.caller, command.amount)

    def handle_burn_from(self, ctx: Context, command: BurnFrom) -> None:
        spend_allowance(ctx, command.owner, ctx.caller, command.amount)
        self._burn(ctx, command.owner, command.amount)

    # Allowances

    def _set_allowance(self, ctx: Context, owner: str, spender: str, amount: int) -> None:
        ctx.state.account_for_update(owner).allowances[spender] = amount
        ctx.emit(owner, events.Approval(owner=owner, spender=spender, amount=amount))

    def handle_approve(self, ctx: Context, command: Approve) -> bool:
        self._set_allowance(ctx, ctx.caller, command.spender, command.amount)
        return True

    def handle_increase_allowance(self, ctx: Context, command: IncreaseAllowance) -> bool:
        current = ctx.state.get_account(ctx.caller).allowance(command.spender)
        self._set_allowance(ctx, ctx.caller, command.spender, current + command.added_value)
        return True

    def handle_decrease_allowance(self, ctx: Context, command: DecreaseAllowance) -> bool:
        """
        Raises:
            AllowanceUnderflow: If the decrease exceeds the current allowance
        """
        current = ctx.state.get_account(ctx.caller).allowance(command.spender)
        if command.subtracted_value > current:
            raise AllowanceUnderflow(
                ctx.caller, command.spender, current, command.subtracted_value
            )
        self._set_allowance(ctx, ctx.caller, command.spender, current - command.subtracted_value)
        return True

    def handle_permit(self, ctx: Context, command: Permit) -> None:
        """
        Set an allowance from an owner-signed authorization

        The digest binds the owner's current nonce, so each signature is
        accepted at most once; the nonce then moves up by exactly one.

        Raises:
            ExpiredAuthorization: If now is past the deadline
            InvalidAuthorization: If the signature is not the owner's
        """
        if ctx.now > command.deadline:
            raise ExpiredAuthorization(command.deadline, ctx.now)

        nonce = ctx.state.get_account(command.owner).nonce
        digest = permit_digest(
            self.domain_separator,
            command.owner,
            command.spender,
            command.value,
            nonce,
            command.deadline,
        )
        if not self.verifier.verify(command.owner, digest, command.signature):
            raise InvalidAuthorization(command.owner)

        ctx.state.account_for_update(command.owner).nonce = nonce + 1
        self._set_allowance(ctx, command.owner, command.spender, command.value)

    # Accrual Lifecycle

    def handle_start_accruing(self, ctx: Context, command: StartAccruing) -> None:
        """
        Start (or restart after a reported removal) a human's accrual

        Streams left over from an earlier accrual period resume from now;
        the time in between was never minted.

        Raises:
            NotRegistered: If the registry does not know the human
            AlreadyAccruing: If the human already has a checkpoint
        """
        if not ctx.is_registered(command.human):
            raise NotRegistered(command.human)
        if ctx.state.get_account(command.human).is_accruing:
            raise AlreadyAccruing(command.human)

        for stream in StreamStore(ctx.state.streams).streams_of(command.human):
            settle_frozen_stream(ctx, stream, ctx.now)
        ctx.state.account_for_update(command.human).accrual_checkpoint = ctx.now
        ctx.emit(command.human, events.AccrualStarted(human=command.human, checkpoint=ctx.now))

    def handle_report_removal(self, ctx: Context, command: ReportRemoval) -> int:
        """
        Stop a removed human's accrual and pay it to the reporter

        The whole elapsed accrual goes to the caller as a bounty for
        pruning stale accruers. The human's streams are paid what was
        minted for them before the checkpoint and skip ahead to now, so
        the seconds in the bounty are never paid out a second time.

        Returns:
            The amount paid to the reporter

        Raises:
            StillRegistered: If the human is still registered
            NotAccruing: If the human has no checkpoint
        """
        if ctx.is_registered(command.human):
            raise StillRegistered(command.human)
        account = ctx.state.get_account(command.human)
        if not account.is_accruing:
            raise NotAccruing(command.human)

        reward = accrued(ctx.state.accrued_per_second, account.accrual_checkpoint, ctx.now)
        for stream in StreamStore(ctx.state.streams).streams_of(command.human):
            settle_frozen_stream(ctx, stream, ctx.now)
        ctx.state.account_for_update(command.human).accrual_checkpoint = 0
        ctx.state.total_supply += reward
        ctx.state.account_for_update(ctx.caller).settled_balance += reward

        ctx.emit(
            command.human,
            events.RemovalReported(human=command.human, reporter=ctx.caller, amount=reward),
        )
        return reward

    # Administration

    def _require_governor(self, ctx: Context) -> None:
        if ctx.caller != ctx.state.governor:
            raise NotGovernor(ctx.caller)

    def handle_change_governor(self, ctx: Context, command: ChangeGovernor) -> None:
        self._require_governor(ctx)
        previous = ctx.state.governor
        ctx.state.governor = command.new_governor
        ctx.emit(
            previous,
            events.GovernorChanged(previous_governor=previous, new_governor=command.new_governor),
        )

    def handle_change_registry(self, ctx: Context, command: ChangeRegistry) -> None:
        """Authorize a registry swap; the host swaps the object after commit"""
        self._require_governor(ctx)
        ctx.emit(ctx.caller, events.RegistryChanged(registry_name=command.registry_name))

    def handle_change_accrued_per_second(
        self, ctx: Context, command: ChangeAccruedPerSecond
    ) -> None:
        """
        Change the per-human accrual rate

        Pending accrual is computed lazily, so the new rate also applies
        to time elapsed since each account's last checkpoint.
        """
        self._require_governor(ctx)
        previous = ctx.state.accrued_per_second
        ctx.state.accrued_per_second = command.accrued_per_second
        ctx.emit(
            ctx.caller,
            events.AccruedPerSecondChanged(
                previous_rate=previous, new_rate=command.accrued_per_second
            ),
        )

    def handle_set_max_streams_allowed(
        self, ctx: Context, command: SetMaxStreamsAllowed
    ) -> None:
        self._require_governor(ctx)
        previous = ctx.state.max_streams_per_sender
        ctx.state.max_streams_per_sender = command.max_streams
        ctx.emit(
            ctx.caller,
            events.MaxStreamsChanged(previous_max=previous, new_max=command.max_streams),
        )
