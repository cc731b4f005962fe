"""Constant-product pool.

The pool holds two assets and issues claim tokens against them. It follows
the "transfer first, then call" protocol: callers move assets (or claim
tokens) into the pool, then invoke mint/burn/swap, and the pool derives what
it received from the difference between its actual balances and its
recorded reserves.

Swaps use the constant product formula x * y = k with a 0.3% fee on input
amounts. The invariant is checked with fee-adjusted balances scaled by 1000
so that only integer arithmetic is involved.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from cpamm.chain import Chain
from cpamm.constants import (
    ACCUMULATOR_MODULUS,
    FEE_DENOMINATOR,
    FEE_NUMERATOR,
    MINIMUM_LIQUIDITY,
    PROTOCOL_FEE_DIVISOR,
    TIMESTAMP_MODULUS,
    ZERO_ADDRESS,
)
from cpamm.errors import (
    AlreadyInitialized,
    Forbidden,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InvalidTo,
    InvariantViolated,
    Locked,
    MissingCallback,
    Overflow,
    PoolNotInitialized,
)
from cpamm.math import encode_uq112x112, mul_div, sqrt, uqdiv
from cpamm.models.events import Burn, Mint, Swap, Sync
from cpamm.models.types import normalize_address
from cpamm.safe_int import S
from cpamm.tokens.erc20 import Token

if TYPE_CHECKING:
    from cpamm.pools.registry import PoolRegistry

logger = structlog.get_logger()

# callback(sender, amount0_out, amount1_out, data), invoked mid-swap
SwapCallback = Callable[[str, int, int, bytes], None]


class PoolState(str, Enum):
    """Lifecycle of a pool."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class ConstantProductPool(Token):
    """Two-asset reserve pool with its own claim token.

    Args:
        chain: Chain the pool is deployed on
        address: Pool address (derived by the registry)
        registry: Registry that created the pool; also the fee authority
    """

    def __init__(self, chain: Chain, address: str, registry: PoolRegistry) -> None:
        super().__init__(chain, address, name="CPAMM Claim", symbol="CPAMM-C", decimals=18)
        self.registry = registry
        self.state = PoolState.UNINITIALIZED
        self.asset0 = ZERO_ADDRESS
        self.asset1 = ZERO_ADDRESS
        self.reserve0 = 0
        self.reserve1 = 0
        self.block_timestamp_last = 0
        self.price0_cumulative_last = 0
        self.price1_cumulative_last = 0
        # reserve0 * reserve1 as of the most recent liquidity event
        self.k_last = 0
        self._unlocked = True

    # --- Read accessors ---

    def get_reserves(self) -> tuple[int, int, int]:
        """Return (reserve0, reserve1, block_timestamp_last)."""
        return self.reserve0, self.reserve1, self.block_timestamp_last

    @property
    def total_claim_supply(self) -> int:
        return self.total_supply

    def claim_balance_of(self, holder: str) -> int:
        return self.balance_of(holder)

    def get_reserves_for(self, asset_in: str) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        asset_in = normalize_address(asset_in)
        if asset_in == self.asset0:
            return self.reserve0, self.reserve1
        elif asset_in == self.asset1:
            return self.reserve1, self.reserve0
        else:
            raise ValueError(f"Asset {asset_in} not in pool")

    # --- Lifecycle ---

    def initialize(self, asset0: str, asset1: str, *, sender: str) -> None:
        """Bind the pool to its asset pair. Only the registry may call this, once.

        Raises:
            Forbidden: If sender is not the registry
            AlreadyInitialized: If the pool already has its assets
        """
        if normalize_address(sender) != self.registry.address:
            raise Forbidden(f"Only the registry may initialize pool {self.address}")
        if self.state is PoolState.ACTIVE:
            raise AlreadyInitialized(f"Pool {self.address} is already initialized")
        self._assign("asset0", normalize_address(asset0, validate=True))
        self._assign("asset1", normalize_address(asset1, validate=True))
        self._assign("state", PoolState.ACTIVE)

    # --- Mutating operations ---

    def mint(self, to: str, *, sender: str) -> int:
        """Issue claim tokens for assets already transferred into the pool.

        Returns:
            Claim tokens credited to ``to``

        Raises:
            InsufficientLiquidityMinted: If the deposit is worth zero claim tokens
        """
        with self._lock(), self.chain.atomic():
            reserve0, reserve1, _ = self.get_reserves()
            balance0, balance1 = self._held_balances()
            amount0 = (S(balance0) - S(reserve0)).value
            amount1 = (S(balance1) - S(reserve1)).value

            fee_on = self._mint_fee(reserve0, reserve1)
            # read after _mint_fee, which can grow the supply
            total_supply = self.total_supply
            if total_supply == 0:
                root = sqrt((S(amount0) * S(amount1)).value)
                if root <= MINIMUM_LIQUIDITY:
                    raise InsufficientLiquidityMinted(
                        f"Initial deposit too small: sqrt(k)={root} <= {MINIMUM_LIQUIDITY}"
                    )
                liquidity = root - MINIMUM_LIQUIDITY
                self._mint(ZERO_ADDRESS, MINIMUM_LIQUIDITY)
            else:
                liquidity = min(
                    mul_div(amount0, total_supply, reserve0),
                    mul_div(amount1, total_supply, reserve1),
                )
            if liquidity <= 0:
                raise InsufficientLiquidityMinted(
                    f"Deposit ({amount0}, {amount1}) mints no liquidity"
                )
            self._mint(to, liquidity)

            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self._assign("k_last", (S(self.reserve0) * S(self.reserve1)).value)
            self.chain.emit(
                Mint(address=self.address, sender=sender, amount0=amount0, amount1=amount1)
            )

        logger.info(
            "liquidity_minted",
            pool=self.address,
            to=to,
            amount0=amount0,
            amount1=amount1,
            liquidity=liquidity,
        )
        return liquidity

    def burn(self, to: str, *, sender: str) -> tuple[int, int]:
        """Redeem claim tokens already transferred into the pool.

        Returns:
            (amount0, amount1) sent to ``to``

        Raises:
            InsufficientLiquidityBurned: If either redeemed amount rounds to zero
        """
        with self._lock(), self.chain.atomic():
            reserve0, reserve1, _ = self.get_reserves()
            balance0, balance1 = self._held_balances()
            liquidity = self.balance_of(self.address)

            fee_on = self._mint_fee(reserve0, reserve1)
            total_supply = self.total_supply
            if total_supply == 0:
                raise InsufficientLiquidityBurned(f"Pool {self.address} has no liquidity")
            # proportional to actual balances, not recorded reserves
            amount0 = mul_div(liquidity, balance0, total_supply)
            amount1 = mul_div(liquidity, balance1, total_supply)
            if amount0 == 0 or amount1 == 0:
                raise InsufficientLiquidityBurned(
                    f"Burning {liquidity} returns ({amount0}, {amount1})"
                )

            self._burn(self.address, liquidity)
            self._asset(self.asset0).transfer(to, amount0, sender=self.address)
            self._asset(self.asset1).transfer(to, amount1, sender=self.address)
            balance0, balance1 = self._held_balances()

            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self._assign("k_last", (S(self.reserve0) * S(self.reserve1)).value)
            self.chain.emit(
                Burn(
                    address=self.address,
                    sender=sender,
                    amount0=amount0,
                    amount1=amount1,
                    to=to,
                )
            )

        logger.info(
            "liquidity_burned",
            pool=self.address,
            to=to,
            liquidity=liquidity,
            amount0=amount0,
            amount1=amount1,
        )
        return amount0, amount1

    def swap(
        self,
        amount0_out: int,
        amount1_out: int,
        to: str,
        data: bytes = b"",
        *,
        sender: str,
        callback: SwapCallback | None = None,
    ) -> None:
        """Send outputs optimistically, then require the invariant to hold.

        Inputs are whatever the pool holds above ``reserve - amount_out`` once
        outputs (and the optional callback) have run. When ``data`` is
        non-empty, ``callback(sender, amount0_out, amount1_out, data)`` runs
        between the optimistic transfer and validation, which is how flash
        swaps repay within the same operation.

        Raises:
            InsufficientOutputAmount: If both outputs are zero
            InsufficientLiquidity: If an output is not below its reserve
            InvalidTo: If ``to`` is one of the pool's assets
            MissingCallback: If data is given without a callback
            InsufficientInputAmount: If nothing was paid in
            InvariantViolated: If the fee-adjusted product decreased
        """
        if amount0_out == 0 and amount1_out == 0:
            raise InsufficientOutputAmount("Swap requests no output")
        to = normalize_address(to, validate=True)

        with self._lock(), self.chain.atomic():
            reserve0, reserve1, _ = self.get_reserves()
            if amount0_out >= reserve0 or amount1_out >= reserve1:
                raise InsufficientLiquidity(
                    f"Outputs ({amount0_out}, {amount1_out}) exceed "
                    f"reserves ({reserve0}, {reserve1})"
                )
            if to in (self.asset0, self.asset1):
                raise InvalidTo(f"Swap recipient {to} is a pool asset")

            # optimistic transfer
            if amount0_out > 0:
                self._asset(self.asset0).transfer(to, amount0_out, sender=self.address)
            if amount1_out > 0:
                self._asset(self.asset1).transfer(to, amount1_out, sender=self.address)
            if data:
                if callback is None:
                    raise MissingCallback("Swap data given without a callback")
                callback(sender, amount0_out, amount1_out, data)
            balance0, balance1 = self._held_balances()

            amount0_in = max(balance0 - (reserve0 - amount0_out), 0)
            amount1_in = max(balance1 - (reserve1 - amount1_out), 0)
            if amount0_in == 0 and amount1_in == 0:
                raise InsufficientInputAmount("Swap received no input")

            adjusted0 = S(balance0) * FEE_DENOMINATOR - S(amount0_in) * FEE_NUMERATOR
            adjusted1 = S(balance1) * FEE_DENOMINATOR - S(amount1_in) * FEE_NUMERATOR
            if adjusted0 * adjusted1 < S(reserve0) * S(reserve1) * FEE_DENOMINATOR**2:
                raise InvariantViolated(
                    f"Fee-adjusted product {(adjusted0 * adjusted1).value} below "
                    f"{(S(reserve0) * S(reserve1) * FEE_DENOMINATOR**2).value}"
                )

            self._update(balance0, balance1, reserve0, reserve1)
            self.chain.emit(
                Swap(
                    address=self.address,
                    sender=sender,
                    amount0_in=amount0_in,
                    amount1_in=amount1_in,
                    amount0_out=amount0_out,
                    amount1_out=amount1_out,
                    to=to,
                )
            )

        logger.debug(
            "swap_executed",
            pool=self.address,
            amount0_in=amount0_in,
            amount1_in=amount1_in,
            amount0_out=amount0_out,
            amount1_out=amount1_out,
            to=to,
        )

    def skim(self, to: str, *, sender: str) -> tuple[int, int]:
        """Send any balance above the recorded reserves to ``to``."""
        with self._lock(), self.chain.atomic():
            balance0, balance1 = self._held_balances()
            excess0 = (S(balance0) - S(self.reserve0)).value
            excess1 = (S(balance1) - S(self.reserve1)).value
            self._asset(self.asset0).transfer(to, excess0, sender=self.address)
            self._asset(self.asset1).transfer(to, excess1, sender=self.address)
        logger.info(
            "pool_skimmed", pool=self.address, sender=sender, excess0=excess0, excess1=excess1
        )
        return excess0, excess1

    def sync(self, *, sender: str) -> None:
        """Force recorded reserves to match actual balances."""
        with self._lock(), self.chain.atomic():
            balance0, balance1 = self._held_balances()
            self._update(balance0, balance1, self.reserve0, self.reserve1)
        logger.info(
            "pool_synced",
            pool=self.address,
            sender=sender,
            reserve0=self.reserve0,
            reserve1=self.reserve1,
        )

    # --- Internals ---

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Reentrancy guard spanning a whole mutating operation."""
        if self.state is not PoolState.ACTIVE:
            raise PoolNotInitialized(f"Pool {self.address} has no asset pair yet")
        if not self._unlocked:
            raise Locked(f"Pool {self.address} is locked")
        self._unlocked = False
        try:
            yield
        finally:
            self._unlocked = True

    def _asset(self, address: str) -> Token:
        token = self.chain.contract(address)
        if not isinstance(token, Token):
            raise LookupError(f"No token deployed at {address}")
        return token

    def _held_balances(self) -> tuple[int, int]:
        """Actual asset balances of the pool, as opposed to its recorded reserves."""
        return (
            self._asset(self.asset0).balance_of(self.address),
            self._asset(self.asset1).balance_of(self.address),
        )

    def _update(self, balance0: int, balance1: int, reserve0: int, reserve1: int) -> None:
        """Record new reserves and accumulate prices for the elapsed time.

        Raises:
            Overflow: If a balance does not fit in 112 bits
        """
        if not (S(balance0).fits_uint112() and S(balance1).fits_uint112()):
            raise Overflow(f"Balances ({balance0}, {balance1}) exceed 112 bits")
        block_timestamp = self.chain.timestamp % TIMESTAMP_MODULUS
        # wraps with the 32-bit timestamp
        time_elapsed = (block_timestamp - self.block_timestamp_last) % TIMESTAMP_MODULUS
        if time_elapsed > 0 and reserve0 != 0 and reserve1 != 0:
            # overflow is intended: consumers difference the accumulators
            price0 = uqdiv(encode_uq112x112(reserve1), reserve0) * time_elapsed
            price1 = uqdiv(encode_uq112x112(reserve0), reserve1) * time_elapsed
            self._assign(
                "price0_cumulative_last",
                (self.price0_cumulative_last + price0) % ACCUMULATOR_MODULUS,
            )
            self._assign(
                "price1_cumulative_last",
                (self.price1_cumulative_last + price1) % ACCUMULATOR_MODULUS,
            )
        self._assign("reserve0", balance0)
        self._assign("reserve1", balance1)
        self._assign("block_timestamp_last", block_timestamp)
        self.chain.emit(Sync(address=self.address, reserve0=balance0, reserve1=balance1))

    def _mint_fee(self, reserve0: int, reserve1: int) -> bool:
        """Mint the protocol's share of fee growth since the last liquidity event.

        Returns:
            Whether the protocol fee is switched on
        """
        fee_to = self.registry.fee_to
        fee_on = fee_to is not None
        if fee_on:
            if self.k_last != 0:
                root_k = sqrt((S(reserve0) * S(reserve1)).value)
                root_k_last = sqrt(self.k_last)
                if root_k > root_k_last:
                    numerator = S(self.total_supply) * (S(root_k) - S(root_k_last))
                    denominator = S(root_k) * PROTOCOL_FEE_DIVISOR + S(root_k_last)
                    liquidity = (numerator // denominator).value
                    if liquidity > 0:
                        self._mint(fee_to, liquidity)
                        logger.debug(
                            "protocol_fee_minted",
                            pool=self.address,
                            fee_to=fee_to,
                            liquidity=liquidity,
                        )
        elif self.k_last != 0:
            self._assign("k_last", 0)
        return fee_on


__all__ = ["ConstantProductPool", "PoolState", "SwapCallback"]
