"""
Token Module Events - Observable facts about balances and allowances

Events are named in past tense except Transfer and Approval, which keep the
names every token indexer already understands.
"""

from pydantic import BaseModel


class Transfer(BaseModel):
    """
    Value moved between accounts

    Burns are transfers to the zero account. The amount is the nominal
    amount requested; materialized accrual is never reported as a mint.
    """

    sender: str
    recipient: str
    amount: int


class Approval(BaseModel):
    """An allowance was set (approve, permit) or adjusted"""

    owner: str
    spender: str
    amount: int


class AccrualStarted(BaseModel):
    human: str
    checkpoint: int


class RemovalReported(BaseModel):
    """A removed human's accrual was stopped and paid to the reporter"""

    human: str
    reporter: str
    amount: int


class GovernorChanged(BaseModel):
    previous_governor: str
    new_governor: str


class RegistryChanged(BaseModel):
    registry_name: str


class AccruedPerSecondChanged(BaseModel):
    previous_rate: int
    new_rate: int


class MaxStreamsChanged(BaseModel):
    previous_max: int
    new_max: int
