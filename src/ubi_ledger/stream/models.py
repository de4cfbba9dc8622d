"""
Stream Domain Models - Time-bounded delegations of accrual

A stream redirects part of a sender's accrual rate to a recipient for a
fixed window. Records live in an id-keyed table; the per-sender and
per-pair indices are plain id lists kept in sync by the StreamStore.
"""

from pydantic import BaseModel, Field


class Stream(BaseModel):
    """
    A live stream record

    Attributes:
        stream_id: Strictly increasing positive id (0 is never used)
        sender: Account whose accrual is redirected
        recipient: Account receiving the redirected accrual
        rate_per_second: Redirected rate (at most the global accrual rate)
        start_time: First second of the window (immutable)
        stop_time: End of the window (immutable)
        accrued_checkpoint: Time up to which the stream has been withdrawn
            (0 until the first withdrawal)
    """

    stream_id: int = Field(ge=1)
    sender: str
    recipient: str
    rate_per_second: int = Field(gt=0)
    start_time: int = Field(ge=0)
    stop_time: int = Field(ge=0)
    accrued_checkpoint: int = Field(default=0, ge=0)

    @property
    def effective_start(self) -> int:
        """Start of the not-yet-withdrawn part of the window"""
        return max(self.start_time, self.accrued_checkpoint)

    @property
    def is_consumed(self) -> bool:
        """True once everything up to stop_time has been withdrawn"""
        return self.accrued_checkpoint >= self.stop_time

    def involves(self, account: str) -> bool:
        return account in (self.sender, self.recipient)

    model_config = {
        "validate_assignment": True,
        "json_schema_extra": {
            "examples": [
                {
                    "stream_id": 1,
                    "sender": "alice",
                    "recipient": "bob",
                    "rate_per_second": 1,
                    "start_time": 1736942600,
                    "stop_time": 1736942700,
                    "accrued_checkpoint": 0,
                }
            ]
        },
    }


class StreamTable(BaseModel):
    """
    Arena of stream records plus membership indices

    The index lists behave as sets: removal swaps in the last element, so
    their order carries no meaning.
    """

    streams: dict[int, Stream] = Field(default_factory=dict)
    by_sender: dict[str, list[int]] = Field(default_factory=dict)
    by_pair: dict[str, dict[str, list[int]]] = Field(default_factory=dict)
    prev_stream_id: int = Field(default=0, ge=0)
