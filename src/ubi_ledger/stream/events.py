"""
Stream Module Events - Observable facts about stream lifecycles
"""

from pydantic import BaseModel


class StreamCreated(BaseModel):
    stream_id: int
    sender: str
    recipient: str
    rate_per_second: int
    start_time: int
    stop_time: int


class StreamWithdrawn(BaseModel):
    """
    Accrued stream value was paid to the recipient

    `deleted` is True when the withdrawal drained the whole window.
    """

    stream_id: int
    recipient: str
    amount: int
    accrued_checkpoint: int
    deleted: bool


class StreamCancelled(BaseModel):
    stream_id: int
    sender: str
    recipient: str
    cancelled_by: str
