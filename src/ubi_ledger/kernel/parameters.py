"""
Ledger Parameters - Deployment constants and initial governance values

Name, version, chain id and contract address never change after
deployment: they feed the permit domain separator, so changing them would
invalidate every outstanding signed approval. The accrual rate, the stream
limit and the governor only seed the ledger state; afterwards they move
through governor-gated operations.

Fun fact: 277777777777777 base units per second (at 18 decimals) is
almost exactly one token per hour - about 8760 tokens a year per human.
"""

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field

# Opaque identifier that can never sign or hold a stream
ZERO_ACCOUNT = "0x0000000000000000000000000000000000000000"


class LedgerParameters(BaseModel):
    """
    Deployment parameters of a ledger instance

    Environment overrides (see from_env) let the CLI and servers point at
    differently configured ledgers without code changes.
    """

    name: str = Field(
        default="Universal Basic Income",
        min_length=1,
        description="Token name (part of the permit domain)",
    )

    symbol: str = Field(
        default="UBI",
        min_length=1,
        description="Token ticker symbol",
    )

    decimals: int = Field(
        default=18,
        ge=0,
        le=36,
        description="Display decimals; all amounts are integers in base units",
    )

    version: str = Field(
        default="2",
        min_length=1,
        description="Ledger version (part of the permit domain)",
    )

    chain_id: int = Field(
        default=1,
        ge=0,
        description="Chain identifier (part of the permit domain)",
    )

    contract_address: str = Field(
        default="ubi-ledger",
        min_length=1,
        description="Identity of this ledger instance; cannot receive streams",
    )

    initial_accrued_per_second: int = Field(
        default=277_777_777_777_777,
        gt=0,
        description="Per-human accrual rate at genesis (base units per second)",
    )

    initial_max_streams_per_sender: int = Field(
        default=10,
        ge=0,
        description="Maximum live streams per sender at genesis",
    )

    initial_governor: str = Field(
        default="governor",
        min_length=1,
        description="Account allowed to run administrative operations at genesis",
    )

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "LedgerParameters":
        """
        Build parameters from UBI_* environment variables

        Unset variables fall back to the field defaults. Values are
        validated (and coerced from strings) by the model itself.
        """
        env = os.environ if environ is None else environ
        mapping = {
            "UBI_NAME": "name",
            "UBI_SYMBOL": "symbol",
            "UBI_DECIMALS": "decimals",
            "UBI_VERSION": "version",
            "UBI_CHAIN_ID": "chain_id",
            "UBI_CONTRACT_ADDRESS": "contract_address",
            "UBI_ACCRUED_PER_SECOND": "initial_accrued_per_second",
            "UBI_MAX_STREAMS": "initial_max_streams_per_sender",
            "UBI_GOVERNOR": "initial_governor",
        }
        values = {field: env[var] for var, field in mapping.items() if var in env}
        return cls(**values)


default_parameters = LedgerParameters()
