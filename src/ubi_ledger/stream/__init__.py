"""
Stream Module - Time-bounded redirection of accrual

A human can redirect part of their accrual rate to another account for a
fixed window. The module keeps the stream table, the rules streams must
satisfy and the accounting that keeps sender and streams from claiming
the same second twice.
"""

from ubi_ledger.stream.models import Stream, StreamTable

__all__ = [
    "Stream",
    "StreamTable",
]
