"""
Operation context - everything one ledger call may see and touch

The host binds a caller, a single clock reading, the registry and a
private working copy of the state to each call. Handlers mutate only the
working copy and record events here; the host commits both or discards
both.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

from ubi_ledger.kernel.events import Event, create_event
from ubi_ledger.kernel.ids import generate_id
from ubi_ledger.kernel.registry import HumanityRegistry

S = TypeVar("S")


class OperationContext(Generic[S]):
    """
    Per-call execution context

    Attributes:
        state: Working copy of the ledger state (committed on success)
        now: Clock reading, fixed for the whole call
        caller: Identity bound to the call
        registry: Humanity registry consulted during the call
        operation_id: Identifier shared by all events of the call
        events: Events emitted so far
    """

    def __init__(
        self,
        state: S,
        now: int,
        caller: str,
        registry: HumanityRegistry,
        operation_id: str | None = None,
    ) -> None:
        self.state = state
        self.now = now
        self.caller = caller
        self.registry = registry
        self.operation_id = operation_id or generate_id()
        self.events: list[Event] = []

    def is_registered(self, account: str) -> bool:
        return self.registry.is_registered(account)

    def emit(self, subject_id: str, payload: BaseModel) -> Event:
        """
        Record an observability event for this call

        The event type is the payload model's class name (e.g. Transfer).
        """
        event = create_event(
            event_id=generate_id(),
            operation_id=self.operation_id,
            event_type=type(payload).__name__,
            subject_id=subject_id,
            occurred_at=self.now,
            actor_id=self.caller,
            payload=payload.model_dump(mode="json"),
        )
        self.events.append(event)
        return event
