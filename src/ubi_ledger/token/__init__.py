"""
Token Module - Balances, allowances and continuous accrual

This module implements the fungible side of the ledger:
- Accounts whose balance grows every second while their human is registered
- Transfers, burns and allowances on lazily reconciled balances
- Signed approvals (permits) with replay protection

Fun fact: No balance is ever updated by a timer. Every account's balance
is a formula of the clock, evaluated only when someone asks.
"""

from ubi_ledger.token.models import Account

__all__ = [
    "Account",
]
