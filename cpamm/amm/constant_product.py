"""Constant-product pricing math.

Pools use the constant product formula: x * y = k
With a 0.3% fee on input amounts.

These are the pure quoting functions the router and the API rely on. They
read no state; callers pass reserves in (reserve_in, reserve_out) order.
"""

from __future__ import annotations

from cpamm.constants import FEE_DENOMINATOR, FEE_MULTIPLIER
from cpamm.errors import (
    InsufficientAmount,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientOutputAmount,
)
from cpamm.safe_int import S


class ConstantProduct:
    """Constant-product AMM math.

    Formula: amount_out = (amount_in * 997 * reserve_out) / (reserve_in * 1000 + amount_in * 997)

    The 997/1000 factor accounts for the 0.3% fee.
    """

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        """Equivalent amount of B for amount_a of A at the current ratio, fee free.

        Formula: amount_b = amount_a * reserve_b / reserve_a

        Raises:
            InsufficientAmount: If amount_a is zero
            InsufficientLiquidity: If either reserve is zero
        """
        if amount_a <= 0:
            raise InsufficientAmount("Quote amount must be positive")
        if reserve_a <= 0 or reserve_b <= 0:
            raise InsufficientLiquidity("Cannot quote against an empty pool")
        return (S(amount_a) * S(reserve_b) // S(reserve_a)).value

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate output amount using constant product formula.

        Formula: amount_out = (in * 997 * res_out) / (res_in * 1000 + in * 997)

        Args:
            amount_in: Input asset amount
            reserve_in: Reserve of input asset in pool
            reserve_out: Reserve of output asset in pool

        Returns:
            Output asset amount, rounded down

        Raises:
            InsufficientInputAmount: If amount_in is zero
            InsufficientLiquidity: If either reserve is zero
        """
        if amount_in <= 0:
            raise InsufficientInputAmount("Input amount must be positive")
        if reserve_in <= 0 or reserve_out <= 0:
            raise InsufficientLiquidity("Pool has no liquidity")

        amount_in_with_fee = S(amount_in) * S(FEE_MULTIPLIER)
        numerator = amount_in_with_fee * S(reserve_out)
        denominator = S(reserve_in) * S(FEE_DENOMINATOR) + amount_in_with_fee

        return (numerator // denominator).value

    def get_amount_in(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate required input for desired output.

        Formula: amount_in = (res_in * out * 1000) / ((res_out - out) * 997) + 1

        Args:
            amount_out: Desired output asset amount
            reserve_in: Reserve of input asset in pool
            reserve_out: Reserve of output asset in pool

        Returns:
            Required input amount, rounded up

        Raises:
            InsufficientOutputAmount: If amount_out is zero
            InsufficientLiquidity: If either reserve is zero or the output
                would drain the reserve
        """
        if amount_out <= 0:
            raise InsufficientOutputAmount("Output amount must be positive")
        if reserve_in <= 0 or reserve_out <= 0:
            raise InsufficientLiquidity("Pool has no liquidity")
        if amount_out >= reserve_out:
            raise InsufficientLiquidity(
                f"Output {amount_out} not below reserve {reserve_out}"
            )

        # Ceiling division: (numerator // denominator) + 1
        numerator = S(reserve_in) * S(amount_out) * S(FEE_DENOMINATOR)
        denominator = (S(reserve_out) - S(amount_out)) * S(FEE_MULTIPLIER)

        return ((numerator // denominator) + S(1)).value


# Singleton instance
constant_product = ConstantProduct()


__all__ = ["ConstantProduct", "constant_product"]
