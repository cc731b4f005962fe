"""Pydantic models for the HTTP API.

Amounts travel as decimal strings so that values above 2^53 survive JSON
clients; field names are camelCase on the wire.
"""

from pydantic import BaseModel, Field

from cpamm.models.types import Address, Uint256


class PoolInfo(BaseModel):
    """Snapshot of one pool's reserves and accumulators."""

    address: Address
    asset0: Address
    asset1: Address
    reserve0: Uint256
    reserve1: Uint256
    block_timestamp_last: int = Field(alias="blockTimestampLast", ge=0)
    total_claim_supply: Uint256 = Field(alias="totalClaimSupply")
    price0_cumulative_last: Uint256 = Field(alias="price0CumulativeLast")
    price1_cumulative_last: Uint256 = Field(alias="price1CumulativeLast")

    model_config = {"populate_by_name": True}


class PoolAddress(BaseModel):
    """Predicted pool address for a pair, with the pair in canonical order."""

    address: Address
    asset0: Address
    asset1: Address
    deployed: bool = Field(description="Whether the registry has created this pool yet.")


class QuoteRequest(BaseModel):
    """Quote along a path of assets.

    For amounts-out, ``amount`` is the exact input of path[0]; for
    amounts-in, it is the exact output of path[-1].
    """

    amount: Uint256
    path: list[Address]


class QuoteResponse(BaseModel):
    """Amounts at every step of the quoted path."""

    amounts: list[Uint256]
    amount_in: Uint256 = Field(alias="amountIn")
    amount_out: Uint256 = Field(alias="amountOut")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Body returned when the engine rejects a request."""

    code: str
    message: str


__all__ = ["PoolInfo", "PoolAddress", "QuoteRequest", "QuoteResponse", "ErrorResponse"]
