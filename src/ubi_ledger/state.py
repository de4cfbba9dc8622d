"""
Ledger State - The complete persistent state of one ledger instance

Everything the ledger remembers between calls lives in one LedgerState:
accounts, the stream table and the global parameters that governance can
change. Operations receive it explicitly (through the operation context);
there is no module-level ledger state anywhere.
"""

from pydantic import BaseModel, Field

from ubi_ledger.kernel.parameters import LedgerParameters
from ubi_ledger.stream.models import StreamTable
from ubi_ledger.token.models import Account


class LedgerState(BaseModel):
    """
    Root of the ledger state

    Attributes:
        accounts: Account records by identifier (absent = all zero)
        total_supply: Materialized supply; a lower bound that excludes
            accrual nobody has materialized yet
        accrued_per_second: Current per-human accrual rate
        max_streams_per_sender: Stream count limit checked at creation
        governor: Account allowed to run administrative operations
        streams: Stream records and indices
    """

    accounts: dict[str, Account] = Field(default_factory=dict)
    total_supply: int = Field(default=0, ge=0)
    accrued_per_second: int = Field(gt=0)
    max_streams_per_sender: int = Field(ge=0)
    governor: str
    streams: StreamTable = Field(default_factory=StreamTable)

    model_config = {"validate_assignment": True}

    @classmethod
    def genesis(cls, parameters: LedgerParameters) -> "LedgerState":
        """Build the initial state of a new ledger"""
        return cls(
            accrued_per_second=parameters.initial_accrued_per_second,
            max_streams_per_sender=parameters.initial_max_streams_per_sender,
            governor=parameters.initial_governor,
        )

    def get_account(self, account_id: str) -> Account:
        """
        Read an account without creating it

        Unknown accounts read as a fresh, all-zero record.
        """
        return self.accounts.get(account_id) or Account()

    def account_for_update(self, account_id: str) -> Account:
        """Return the stored account record, creating it if needed"""
        if account_id not in self.accounts:
            self.accounts[account_id] = Account()
        return self.accounts[account_id]

    def settled_total(self) -> int:
        """Sum of every settled balance"""
        return sum(account.settled_balance for account in self.accounts.values())
