"""Integer math primitives for constant-product pools.

All quantities are non-negative integers. Square roots round down, divisions
truncate, and products are checked against the uint256 range through SafeInt.

UQ112x112 values are unsigned fixed-point numbers with 112 fractional bits,
used by the pool's cumulative price accumulators.
"""

from __future__ import annotations

import math

from cpamm.safe_int import S

__all__ = [
    "Q112",
    "sqrt",
    "mul_div",
    "encode_uq112x112",
    "uqdiv",
]

Q112 = 2**112


def sqrt(y: int) -> int:
    """Floor of the square root of y.

    Raises:
        ValueError: If y is negative
    """
    if y < 0:
        raise ValueError(f"sqrt of negative value: {y}")
    return math.isqrt(y)


def mul_div(a: int, b: int, denominator: int) -> int:
    """Compute a * b // denominator with overflow and zero-divisor checks."""
    return (S(a) * S(b) // S(denominator)).value


def encode_uq112x112(y: int) -> int:
    """Encode a 112-bit integer as UQ112x112."""
    return (S(y) * Q112).value


def uqdiv(x: int, y: int) -> int:
    """Divide a UQ112x112 by a plain integer, returning UQ112x112."""
    return (S(x) // S(y)).value
