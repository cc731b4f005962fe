"""Pydantic models for a genesis file: the initial state of a served deployment.

Example:
    {
      "native": {"0x...": "5000000000000000000"},
      "feeTo": "0x...",
      "tokens": [
        {"symbol": "USD", "balances": {"0x...": "1000000000000000000000"}},
        {"symbol": "TAX", "feeBps": 100}
      ],
      "pools": [
        {"assetA": "USD", "assetB": "WNATIVE",
         "amountA": "2000000000000000000000", "amountB": "1000000000000000000"}
      ]
    }

Pools name their assets by token symbol; the wrapped native token is
available under its own symbol and is funded by wrapping fresh native.
"""

from pydantic import BaseModel, Field

from cpamm.models.types import Address, Uint256


class GenesisToken(BaseModel):
    """A token to deploy, with optional fee-on-transfer and initial balances."""

    symbol: str = Field(min_length=1)
    name: str | None = None
    decimals: int = Field(default=18, ge=0, le=255)
    fee_bps: int = Field(default=0, alias="feeBps", ge=0, lt=10_000)
    balances: dict[Address, Uint256] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


class GenesisPool(BaseModel):
    """A pool to create and fund; claim tokens go to ``provider``."""

    asset_a: str = Field(alias="assetA")
    asset_b: str = Field(alias="assetB")
    amount_a: Uint256 = Field(alias="amountA")
    amount_b: Uint256 = Field(alias="amountB")
    provider: Address | None = None

    model_config = {"populate_by_name": True}


class Genesis(BaseModel):
    native: dict[Address, Uint256] = Field(default_factory=dict)
    fee_to: Address | None = Field(default=None, alias="feeTo")
    tokens: list[GenesisToken] = Field(default_factory=list)
    pools: list[GenesisPool] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


__all__ = ["Genesis", "GenesisPool", "GenesisToken"]
