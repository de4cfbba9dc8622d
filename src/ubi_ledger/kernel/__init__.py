"""
Kernel - Host infrastructure shared by every ledger module

The kernel plays the execution host: it supplies the clock, binds callers
and registries to calls, guards against reentrancy, and commits state and
events atomically. It knows nothing about balances or streams.
"""

from ubi_ledger.kernel.context import OperationContext
from ubi_ledger.kernel.errors import (
    LedgerError,
    ReentrancyDetected,
    StoreError,
    StreamError,
    UBIError,
)
from ubi_ledger.kernel.events import Event
from ubi_ledger.kernel.ids import generate_id
from ubi_ledger.kernel.parameters import ZERO_ACCOUNT, LedgerParameters
from ubi_ledger.kernel.registry import HumanityRegistry, InMemoryHumanityRegistry
from ubi_ledger.kernel.time import RealTimeProvider, TestTimeProvider, TimeProvider

__all__ = [
    # IDs
    "generate_id",
    # Time
    "TimeProvider",
    "RealTimeProvider",
    "TestTimeProvider",
    # Host
    "OperationContext",
    "Event",
    "HumanityRegistry",
    "InMemoryHumanityRegistry",
    "LedgerParameters",
    "ZERO_ACCOUNT",
    # Errors
    "UBIError",
    "LedgerError",
    "StreamError",
    "StoreError",
    "ReentrancyDetected",
]
