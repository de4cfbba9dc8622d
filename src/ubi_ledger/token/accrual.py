"""
Accrual Clock - How much value a rate produces over a time span

Pure functions, no state. Everything that grows with time (self-accrual,
stream accrual, the value reported removals pay out) goes through
accrued().
"""

from ubi_ledger.kernel.registry import HumanityRegistry
from ubi_ledger.state import LedgerState


def accrued(rate: int, start: int, end: int) -> int:
    """
    Value produced by `rate` per second between start and end

    Returns 0 for empty or inverted spans, so callers clamping to window
    bounds never produce negative value.

    Example:
        >>> accrued(2, 100, 110)
        20
        >>> accrued(2, 110, 100)
        0
    """
    if end <= start:
        return 0
    return rate * (end - start)


def is_accruing(state: LedgerState, account: str, registry: HumanityRegistry) -> bool:
    """
    True if the account's self-accrual is live right now

    Requires both a checkpoint (start_accruing ran) and a current
    registration. A lapsed registration freezes accrual without clearing
    the checkpoint.
    """
    return state.get_account(account).is_accruing and registry.is_registered(account)


def self_accrued(
    state: LedgerState, account: str, now: int, registry: HumanityRegistry
) -> int:
    """Gross accrual since the account's checkpoint (before delegation)"""
    if not is_accruing(state, account, registry):
        return 0
    return accrued(
        state.accrued_per_second,
        state.get_account(account).accrual_checkpoint,
        now,
    )
