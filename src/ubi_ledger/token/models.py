"""
Token Domain Models - Accounts of the ledger

An account's observable balance is never stored directly. What is stored
is the settled part plus the point in time from which accrual is measured;
everything else is derived when someone looks.

Fun fact: This "store the formula, not the value" trick is how interest
accrues in most lending protocols - nobody updates a million balances
every second!
"""

from pydantic import BaseModel, Field


class Account(BaseModel):
    """
    Per-account ledger record

    Attributes:
        settled_balance: Balance excluding not-yet-materialized accrual
        accrual_checkpoint: Time from which self-accrual is measured
            (0 means "not accruing")
        allowances: Spending authorization granted to each spender
        nonce: Signed approvals consumed so far
    """

    settled_balance: int = Field(default=0, ge=0)
    accrual_checkpoint: int = Field(default=0, ge=0)
    allowances: dict[str, int] = Field(default_factory=dict)
    nonce: int = Field(default=0, ge=0)

    @property
    def is_accruing(self) -> bool:
        """True once start_accruing ran and no removal was reported since"""
        return self.accrual_checkpoint != 0

    def allowance(self, spender: str) -> int:
        return self.allowances.get(spender, 0)

    model_config = {
        "validate_assignment": True,
        "json_schema_extra": {
            "examples": [
                {
                    "settled_balance": 1500,
                    "accrual_checkpoint": 1736942400,
                    "allowances": {"bob": 200},
                    "nonce": 1,
                }
            ]
        },
    }
