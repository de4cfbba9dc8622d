"""
UBILedger - Main façade class

This is the primary interface for interacting with the ledger. It plays
the execution host for every operation: it binds the caller, reads the
clock once, runs the handler against a private working copy of the state,
and commits the new state together with its events in one SQLite
transaction. A handler that raises leaves the committed state untouched.

Example:
    >>> from ubi_ledger import UBILedger
    >>> from ubi_ledger.kernel import InMemoryHumanityRegistry
    >>> registry = InMemoryHumanityRegistry({"alice"})
    >>> ledger = UBILedger("ubi.db", registry)
    >>> ledger.start_accruing("alice", caller="alice")
    >>> ledger.balance_of("alice")  # grows every second
    >>> stream_id = ledger.create_stream("bob", 1, start, stop, caller="alice")
    >>> ledger.withdraw_from_streams([stream_id], caller="bob")
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel

from ubi_ledger.kernel.context import OperationContext
from ubi_ledger.kernel.errors import ArithmeticUnderflow
from ubi_ledger.kernel.events import Event
from ubi_ledger.kernel.guard import ReentrancyGuard
from ubi_ledger.kernel.logging import LogOperation, get_logger, set_correlation_id
from ubi_ledger.kernel.metrics import (
    burned_amount_total,
    events_appended_total,
    streams_cancelled_total,
    streams_created_total,
    streams_withdrawn_total,
    track_operation_duration,
    transferred_amount_total,
    update_ledger_metrics,
)
from ubi_ledger.kernel.parameters import ZERO_ACCOUNT, LedgerParameters
from ubi_ledger.kernel.registry import HumanityRegistry
from ubi_ledger.kernel.store import SQLiteLedgerStore
from ubi_ledger.kernel.time import RealTimeProvider, TimeProvider
from ubi_ledger.state import LedgerState
from ubi_ledger.stream.accounting import (
    delegated_rate,
    outgoing_delegated_value,
    stream_accrued,
    stream_delta,
)
from ubi_ledger.stream.commands import CancelStream, CreateStream, WithdrawFromStreams
from ubi_ledger.stream.handlers import StreamCommandHandlers
from ubi_ledger.stream.models import Stream
from ubi_ledger.stream.store import StreamStore
from ubi_ledger.token.accrual import self_accrued
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
from ubi_ledger.token.handlers import LedgerCommandHandlers
from ubi_ledger.token.permit import (
    AuthorizationVerifier,
    Ed25519AuthorizationVerifier,
    domain_separator,
)

logger = get_logger(__name__)

C = TypeVar("C", bound=BaseModel)
R = TypeVar("R")


class UBILedger:
    """
    UBI ledger main façade

    Provides a unified API for all ledger operations including:
    - Balances, transfers, burns and allowances
    - Continuous accrual for registered humans
    - Signed approvals (permits)
    - Streams redirecting accrual to other accounts
    - Governor-only administration

    Mutations take the acting identity as the keyword-only `caller`.
    Queries take no lock and read the last committed state.
    """

    def __init__(
        self,
        sqlite_path: str | Path,
        registry: HumanityRegistry,
        parameters: LedgerParameters | None = None,
        time_provider: TimeProvider | None = None,
        verifier: AuthorizationVerifier | None = None,
    ) -> None:
        """
        Initialize the ledger

        Args:
            sqlite_path: Path to SQLite database
            registry: Humanity registry consulted by accrual
            parameters: Deployment parameters (uses defaults if None)
            time_provider: Time provider (uses real time if None)
            verifier: Permit signature verifier (Ed25519 if None)
        """
        self.sqlite_path = Path(sqlite_path)
        self.registry = registry
        self.parameters = parameters or LedgerParameters()
        self.time_provider = time_provider or RealTimeProvider()

        # Initialize infrastructure
        self.store = SQLiteLedgerStore(self.sqlite_path)
        self.guard = ReentrancyGuard()
        self.ledger_handlers = LedgerCommandHandlers(
            self.parameters, verifier or Ed25519AuthorizationVerifier()
        )
        self.stream_handlers = StreamCommandHandlers(self.parameters)

        # Load last committed state, or start a new ledger
        state_json = self.store.load_state_json()
        if state_json is None:
            self.state = LedgerState.genesis(self.parameters)
            self.store.commit(self.state, [])
            logger.info("Ledger initialized", db_path=str(self.sqlite_path))
        else:
            self.state = LedgerState.model_validate_json(state_json)

        update_ledger_metrics(self.state.total_supply, len(self.state.streams.streams))

    # Host

    def _execute(
        self,
        operation: str,
        handler: Callable[[OperationContext[LedgerState], C], R],
        command: C,
        caller: str,
        **log_context: Any,
    ) -> R:
        """
        Run one mutation as an atomic unit

        The guard is held for the whole call, so a nested mutation raises
        ReentrancyDetected instead of committing over this one.
        """

        @track_operation_duration(operation)
        def run() -> R:
            with self.guard.hold(operation):
                working = self.state.model_copy(deep=True)
                ctx = OperationContext(working, self.time_provider.now(), caller, self.registry)
                set_correlation_id(ctx.operation_id)
                with LogOperation(logger, operation, caller=caller, **log_context):
                    result = handler(ctx, command)
                    self.store.commit(working, ctx.events)
                    self.state = working
                    self._record_metrics(ctx.events)
                    return result

        return run()

    def _record_metrics(self, events: list[Event]) -> None:
        for event in events:
            events_appended_total.labels(event_type=event.event_type).inc()
            if event.event_type == "Transfer":
                if event.payload["recipient"] == ZERO_ACCOUNT:
                    burned_amount_total.inc(event.payload["amount"])
                else:
                    transferred_amount_total.inc(event.payload["amount"])
            elif event.event_type == "StreamCreated":
                streams_created_total.inc()
            elif event.event_type == "StreamWithdrawn":
                streams_withdrawn_total.inc()
            elif event.event_type == "StreamCancelled":
                streams_cancelled_total.inc()
        update_ledger_metrics(self.state.total_supply, len(self.state.streams.streams))

    # Token metadata

    @property
    def name(self) -> str:
        return self.parameters.name

    @property
    def symbol(self) -> str:
        return self.parameters.symbol

    @property
    def decimals(self) -> int:
        return self.parameters.decimals

    # Account queries

    def balance_of(self, account: str) -> int:
        """
        Observable balance of an account right now

        Settled balance plus self-accrual since the checkpoint, minus the
        part of that accrual already owed to the account's streams.

        Raises:
            ArithmeticUnderflow: If delegation exceeds what the account
                holds (only reachable after the accrual rate was lowered)
        """
        now = self.time_provider.now()
        balance = (
            self.state.get_account(account).settled_balance
            + self_accrued(self.state, account, now, self.registry)
            - outgoing_delegated_value(self.state, account, now, self.registry)
        )
        if balance < 0:
            raise ArithmeticUnderflow("balance", balance)
        return balance

    def get_accrued_value(self, account: str) -> int:
        """Self-accrual since the checkpoint not yet materialized, net of streams"""
        now = self.time_provider.now()
        return self_accrued(self.state, account, now, self.registry) - outgoing_delegated_value(
            self.state, account, now, self.registry
        )

    def allowance(self, owner: str, spender: str) -> int:
        return self.state.get_account(owner).allowance(spender)

    def total_supply(self) -> int:
        """Materialized supply: a lower bound on the sum of all balances"""
        return self.state.total_supply

    def nonces(self, owner: str) -> int:
        return self.state.get_account(owner).nonce

    def is_accruing(self, account: str) -> bool:
        """True if the account has a live accrual checkpoint"""
        return self.state.get_account(account).is_accruing

    def domain_separator(self) -> bytes:
        return domain_separator(self.parameters)

    def accrued_per_second(self) -> int:
        return self.state.accrued_per_second

    def max_streams_allowed(self) -> int:
        return self.state.max_streams_per_sender

    def governor(self) -> str:
        return self.state.governor

    # Stream queries

    def get_stream(self, stream_id: int) -> Stream | None:
        """Copy of a live stream record, or None if it does not exist"""
        stream = StreamStore(self.state.streams).get(stream_id)
        return stream.model_copy() if stream else None

    def get_streams_of(self, sender: str) -> list[int]:
        """Ids of the sender's live streams, in no particular order"""
        return StreamStore(self.state.streams).stream_ids_of(sender)

    def get_streams_count(self, sender: str) -> int:
        return StreamStore(self.state.streams).count(sender)

    def get_delegated_accrued_value(self, account: str) -> int:
        """Value the account's streams have claimed since its checkpoint"""
        return outgoing_delegated_value(
            self.state, account, self.time_provider.now(), self.registry
        )

    def get_delegated_value(self, account: str) -> int:
        """Total rate the account is delegating at this instant"""
        return delegated_rate(self.state, account, self.time_provider.now())

    def delta_of(self, stream_id: int) -> int:
        """
        Seconds currently withdrawable from a stream

        Raises:
            StreamNotFound: If the stream does not exist
        """
        stream = StreamStore(self.state.streams).require(stream_id)
        return stream_delta(stream, self.time_provider.now())

    def balance_of_stream(self, stream_id: int) -> int:
        """
        Value currently withdrawable from a stream

        Raises:
            StreamNotFound: If the stream does not exist
        """
        stream = StreamStore(self.state.streams).require(stream_id)
        return stream_accrued(self.state, stream, self.time_provider.now(), self.registry)

    # Event queries

    def events(
        self,
        event_type: str | None = None,
        subject_id: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Committed events, oldest first"""
        return [
            event.model_dump()
            for event in self.store.load_events(
                event_type=event_type, subject_id=subject_id, limit=limit
            )
        ]

    # Transfers and allowances

    def transfer(self, recipient: str, amount: int, *, caller: str) -> bool:
        return self._execute(
            "transfer",
            self.ledger_handlers.handle_transfer,
            Transfer(recipient=recipient, amount=amount),
            caller,
            recipient=recipient,
            amount=amount,
        )

    def transfer_from(self, owner: str, recipient: str, amount: int, *, caller: str) -> bool:
        return self._execute(
            "transfer_from",
            self.ledger_handlers.handle_transfer_from,
            TransferFrom(owner=owner, recipient=recipient, amount=amount),
            caller,
            owner=owner,
            recipient=recipient,
            amount=amount,
        )

    def burn(self, amount: int, *, caller: str) -> None:
        self._execute(
            "burn", self.ledger_handlers.handle_burn, Burn(amount=amount), caller, amount=amount
        )

    def burn_from(self, owner: str, amount: int, *, caller: str) -> None:
        self._execute(
            "burn_from",
            self.ledger_handlers.handle_burn_from,
            BurnFrom(owner=owner, amount=amount),
            caller,
            owner=owner,
            amount=amount,
        )

    def approve(self, spender: str, amount: int, *, caller: str) -> bool:
        return self._execute(
            "approve",
            self.ledger_handlers.handle_approve,
            Approve(spender=spender, amount=amount),
            caller,
            spender=spender,
            amount=amount,
        )

    def increase_allowance(self, spender: str, added_value: int, *, caller: str) -> bool:
        return self._execute(
            "increase_allowance",
            self.ledger_handlers.handle_increase_allowance,
            IncreaseAllowance(spender=spender, added_value=added_value),
            caller,
            spender=spender,
        )

    def decrease_allowance(self, spender: str, subtracted_value: int, *, caller: str) -> bool:
        return self._execute(
            "decrease_allowance",
            self.ledger_handlers.handle_decrease_allowance,
            DecreaseAllowance(spender=spender, subtracted_value=subtracted_value),
            caller,
            spender=spender,
        )

    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        signature: str,
        *,
        caller: str,
    ) -> None:
        """
        Set owner's allowance for spender from an owner-signed permit

        Anyone may submit the permit; the signature is what authorizes it.

        Raises:
            ExpiredAuthorization: If the deadline has passed
            InvalidAuthorization: If the signature does not match owner
        """
        self._execute(
            "permit",
            self.ledger_handlers.handle_permit,
            Permit(
                owner=owner,
                spender=spender,
                value=value,
                deadline=deadline,
                signature=signature,
            ),
            caller,
            owner=owner,
            spender=spender,
            signature=signature,
        )

    # Accrual lifecycle

    def start_accruing(self, human: str, *, caller: str) -> None:
        self._execute(
            "start_accruing",
            self.ledger_handlers.handle_start_accruing,
            StartAccruing(human=human),
            caller,
            human=human,
        )

    def report_removal(self, human: str, *, caller: str) -> int:
        """
        Stop accrual of a human no longer registered

        Returns:
            The accrued amount paid to the caller
        """
        return self._execute(
            "report_removal",
            self.ledger_handlers.handle_report_removal,
            ReportRemoval(human=human),
            caller,
            human=human,
        )

    # Streams

    def create_stream(
        self,
        recipient: str,
        rate_per_second: int,
        start_time: int,
        stop_time: int,
        *,
        caller: str,
    ) -> int:
        """
        Redirect part of the caller's accrual to recipient

        Returns:
            The new stream id
        """
        stream = self._execute(
            "create_stream",
            self.stream_handlers.handle_create_stream,
            CreateStream(
                recipient=recipient,
                rate_per_second=rate_per_second,
                start_time=start_time,
                stop_time=stop_time,
            ),
            caller,
            recipient=recipient,
            rate_per_second=rate_per_second,
        )
        return stream.stream_id

    def withdraw_from_streams(self, stream_ids: list[int], *, caller: str) -> int:
        """
        Pay every listed stream's withdrawable value to its recipient

        Returns:
            Total amount paid
        """
        return self._execute(
            "withdraw_from_streams",
            self.stream_handlers.handle_withdraw_from_streams,
            WithdrawFromStreams(stream_ids=stream_ids),
            caller,
            stream_ids=stream_ids,
        )

    def cancel_stream(self, stream_id: int, *, caller: str) -> int:
        """
        Settle and delete a stream

        Returns:
            Amount paid to the recipient while settling
        """
        return self._execute(
            "cancel_stream",
            self.stream_handlers.handle_cancel_stream,
            CancelStream(stream_id=stream_id),
            caller,
            stream_id=stream_id,
        )

    # Administration

    def change_governor(self, new_governor: str, *, caller: str) -> None:
        self._execute(
            "change_governor",
            self.ledger_handlers.handle_change_governor,
            ChangeGovernor(new_governor=new_governor),
            caller,
            new_governor=new_governor,
        )

    def change_registry(
        self, registry: HumanityRegistry, *, caller: str, registry_name: str | None = None
    ) -> None:
        """
        Replace the humanity registry

        The registry object is swapped only after the governor check has
        committed; it is not part of the persisted state, so hosts that
        reopen the ledger must pass the new registry themselves.
        """
        self._execute(
            "change_registry",
            self.ledger_handlers.handle_change_registry,
            ChangeRegistry(registry_name=registry_name or type(registry).__name__),
            caller,
        )
        self.registry = registry

    def change_accrued_per_second(self, accrued_per_second: int, *, caller: str) -> None:
        self._execute(
            "change_accrued_per_second",
            self.ledger_handlers.handle_change_accrued_per_second,
            ChangeAccruedPerSecond(accrued_per_second=accrued_per_second),
            caller,
            accrued_per_second=accrued_per_second,
        )

    def set_max_streams_allowed(self, max_streams: int, *, caller: str) -> None:
        self._execute(
            "set_max_streams_allowed",
            self.ledger_handlers.handle_set_max_streams_allowed,
            SetMaxStreamsAllowed(max_streams=max_streams),
            caller,
            max_streams=max_streams,
        )

    # Health

    def stats(self) -> dict[str, Any]:
        """Summary of the committed state for health checks and the CLI"""
        return {
            "name": self.parameters.name,
            "symbol": self.parameters.symbol,
            "total_supply": self.state.total_supply,
            "accrued_per_second": self.state.accrued_per_second,
            "max_streams_per_sender": self.state.max_streams_per_sender,
            "governor": self.state.governor,
            "accounts": len(self.state.accounts),
            "live_streams": len(self.state.streams.streams),
            "last_stream_id": self.state.streams.prev_stream_id,
            "events": self.store.count_events(),
        }
