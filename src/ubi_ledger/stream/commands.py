"""
Stream Module Commands - Intentions to create, drain or stop streams
"""

from pydantic import BaseModel, Field


class CreateStream(BaseModel):
    """
    Redirect part of the caller's accrual to `recipient` for a window

    Rate and window rules (positive rate, future start, non-empty window)
    are business rules checked by the lifecycle engine so that they report
    InvalidStream errors rather than validation errors.
    """

    recipient: str = Field(..., min_length=1)
    rate_per_second: int = Field(..., ge=0)
    start_time: int = Field(..., ge=0)
    stop_time: int = Field(..., ge=0)


class WithdrawFromStreams(BaseModel):
    """Pay out everything currently withdrawable from each listed stream"""

    stream_ids: list[int] = Field(..., min_length=1)


class CancelStream(BaseModel):
    """Settle and delete a stream (sender or recipient only)"""

    stream_id: int = Field(..., ge=0)
