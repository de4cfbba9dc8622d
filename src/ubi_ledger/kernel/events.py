"""
Observability events emitted by ledger operations

Events describe what a committed operation did (a transfer, a stream
creation, ...). They are written to the store in the same transaction as
the state change, and never written for a rejected operation.

Accrual itself is never logged as a mint: balances grow every second, and
an event per second per human would be unbounded.
"""

from pydantic import BaseModel, Field


class Event(BaseModel):
    """
    Base event class - immutable record of one committed effect

    subject_id groups events by what they are about: an account
    identifier, or "stream:<id>" for stream events.
    """

    event_id: str = Field(
        ...,
        description="Unique event identifier (UUIDv7 for time-ordering)",
    )

    operation_id: str = Field(
        ...,
        description="ID of the ledger operation that produced this event",
    )

    event_type: str = Field(
        ...,
        description="Specific event type: 'Transfer', 'StreamCreated', etc.",
    )

    subject_id: str = Field(
        ...,
        description="Account identifier or 'stream:<id>'",
    )

    occurred_at: int = Field(
        ...,
        description="Ledger time (seconds) when the operation executed",
        ge=0,
    )

    actor_id: str | None = Field(
        default=None,
        description="Caller of the operation",
    )

    payload: dict = Field(
        default_factory=dict,
        description="Event-specific data (must be JSON-serializable)",
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "event_id": "01908e9a-3b87-7000-8000-123456789abc",
                    "operation_id": "01908e9a-3b86-7000-8000-0000000000aa",
                    "event_type": "Transfer",
                    "subject_id": "alice",
                    "occurred_at": 1736942400,
                    "actor_id": "alice",
                    "payload": {"sender": "alice", "recipient": "bob", "amount": 100},
                }
            ]
        },
    }


def stream_subject(stream_id: int) -> str:
    """Subject id used for events about a stream"""
    return f"stream:{stream_id}"


def create_event(
    *,
    event_id: str,
    operation_id: str,
    event_type: str,
    subject_id: str,
    occurred_at: int,
    actor_id: str | None = None,
    payload: dict | None = None,
) -> Event:
    """Factory function for creating events with all required fields"""
    return Event(
        event_id=event_id,
        operation_id=operation_id,
        event_type=event_type,
        subject_id=subject_id,
        occurred_at=occurred_at,
        actor_id=actor_id,
        payload=payload or {},
    )
