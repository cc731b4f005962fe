"""Pydantic models for events emitted by registry, pools and token ledgers.

Every event records the address of the contract that emitted it. The
``event`` literal doubles as a discriminator when logs are serialized.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from cpamm.models.types import Address

Amount = Annotated[int, Field(ge=0)]


class Event(BaseModel):
    """Base class for all emitted events."""

    event: str
    address: Address = Field(description="Contract that emitted the event.")

    model_config = ConfigDict(frozen=True)


class PoolCreated(Event):
    """A registry deployed a new pool."""

    event: Literal["PoolCreated"] = "PoolCreated"
    asset0: Address
    asset1: Address
    pool: Address
    pool_count: int = Field(ge=1)


class Mint(Event):
    """Claim tokens were issued against a deposit."""

    event: Literal["Mint"] = "Mint"
    sender: Address
    amount0: Amount
    amount1: Amount


class Burn(Event):
    """Claim tokens were redeemed for both assets."""

    event: Literal["Burn"] = "Burn"
    sender: Address
    amount0: Amount
    amount1: Amount
    to: Address


class Swap(Event):
    """A swap settled against the pool."""

    event: Literal["Swap"] = "Swap"
    sender: Address
    amount0_in: Amount
    amount1_in: Amount
    amount0_out: Amount
    amount1_out: Amount
    to: Address


class Sync(Event):
    """Recorded reserves changed."""

    event: Literal["Sync"] = "Sync"
    reserve0: Amount
    reserve1: Amount


class Transfer(Event):
    """Tokens moved between holders (mint/burn use the zero address)."""

    event: Literal["Transfer"] = "Transfer"
    sender: Address
    to: Address
    value: Amount


class Approval(Event):
    """An allowance was set."""

    event: Literal["Approval"] = "Approval"
    owner: Address
    spender: Address
    value: Amount


class Deposit(Event):
    """Native balance was wrapped."""

    event: Literal["Deposit"] = "Deposit"
    dst: Address
    value: Amount


class Withdrawal(Event):
    """Wrapped balance was unwrapped to native."""

    event: Literal["Withdrawal"] = "Withdrawal"
    src: Address
    value: Amount


__all__ = [
    "Event",
    "PoolCreated",
    "Mint",
    "Burn",
    "Swap",
    "Sync",
    "Transfer",
    "Approval",
    "Deposit",
    "Withdrawal",
]
