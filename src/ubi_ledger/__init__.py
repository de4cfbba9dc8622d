"""
UBI Ledger - Continuously accruing token with accrual streams

Every verified human's balance grows by a fixed amount per second, computed
lazily and reconciled exactly whenever it is observed or moved. Humans can
stream part of that accrual to other accounts for bounded time windows,
without any second ever being counted twice.

Fun fact: At the default rate of 0.000277... tokens per second, a human
accrues exactly one token per hour - 8,760 tokens a year of just existing.
"""

from ubi_ledger.ledger import UBILedger

__version__ = "0.1.0"
__all__ = ["UBILedger", "__version__"]
