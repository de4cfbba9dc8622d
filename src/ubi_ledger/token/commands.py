"""
Token Module Commands - Intentions to move, approve or create value

Commands carry the caller-supplied arguments of one operation. Shape
problems (negative amounts, empty identifiers) are rejected here by
pydantic, before any ledger state is read.
"""

from pydantic import BaseModel, Field

# Transfers


class Transfer(BaseModel):
    """Move `amount` from the caller to `recipient`"""

    recipient: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)


class TransferFrom(BaseModel):
    """Move `amount` from `owner` to `recipient`, spending the caller's allowance"""

    owner: str = Field(..., min_length=1)
    recipient: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)


class Burn(BaseModel):
    """Destroy `amount` of the caller's balance"""

    amount: int = Field(..., ge=0)


class BurnFrom(BaseModel):
    """Destroy `amount` of `owner`'s balance, spending the caller's allowance"""

    owner: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)


# Allowances


class Approve(BaseModel):
    """Set the caller's allowance for `spender`"""

    spender: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)


class IncreaseAllowance(BaseModel):
    spender: str = Field(..., min_length=1)
    added_value: int = Field(..., ge=0)


class DecreaseAllowance(BaseModel):
    spender: str = Field(..., min_length=1)
    subtracted_value: int = Field(..., ge=0)


class Permit(BaseModel):
    """
    Set `owner`'s allowance for `spender` using an owner-signed authorization

    Anyone may submit it; the signature, not the caller, proves consent.
    """

    owner: str = Field(..., min_length=1)
    spender: str = Field(..., min_length=1)
    value: int = Field(..., ge=0)
    deadline: int = Field(..., ge=0)
    signature: str = Field(..., min_length=1, description="Hex-encoded signature")


# Accrual Lifecycle


class StartAccruing(BaseModel):
    """Start self-accrual for a registered human"""

    human: str = Field(..., min_length=1)


class ReportRemoval(BaseModel):
    """Stop accrual of a human who left the registry, rewarding the caller"""

    human: str = Field(..., min_length=1)


# Administration


class ChangeGovernor(BaseModel):
    new_governor: str = Field(..., min_length=1)


class ChangeRegistry(BaseModel):
    """Point the ledger at another humanity registry (label for the log)"""

    registry_name: str = Field(..., min_length=1)


class ChangeAccruedPerSecond(BaseModel):
    accrued_per_second: int = Field(..., gt=0)


class SetMaxStreamsAllowed(BaseModel):
    max_streams: int = Field(..., ge=0)
