"""Time-weighted average price helpers built on the pool accumulators."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from cpamm.constants import ACCUMULATOR_MODULUS, TIMESTAMP_MODULUS
from cpamm.math import Q112, encode_uq112x112, uqdiv

if TYPE_CHECKING:
    from cpamm.pools.pool import ConstantProductPool


def current_block_timestamp(timestamp: int) -> int:
    """Truncate a logical timestamp to the 32 bits the pool stores."""
    return timestamp % TIMESTAMP_MODULUS


def current_cumulative_prices(pool: ConstantProductPool) -> tuple[int, int, int]:
    """Cumulative prices as they would read if the pool were updated now.

    Avoids having to call sync() just to observe the accumulators.

    Returns:
        (price0_cumulative, price1_cumulative, block_timestamp)
    """
    block_timestamp = current_block_timestamp(pool.chain.timestamp)
    price0_cumulative = pool.price0_cumulative_last
    price1_cumulative = pool.price1_cumulative_last

    reserve0, reserve1, block_timestamp_last = pool.get_reserves()
    if block_timestamp_last != block_timestamp and reserve0 != 0 and reserve1 != 0:
        time_elapsed = (block_timestamp - block_timestamp_last) % TIMESTAMP_MODULUS
        price0_cumulative = (
            price0_cumulative + uqdiv(encode_uq112x112(reserve1), reserve0) * time_elapsed
        ) % ACCUMULATOR_MODULUS
        price1_cumulative = (
            price1_cumulative + uqdiv(encode_uq112x112(reserve0), reserve1) * time_elapsed
        ) % ACCUMULATOR_MODULUS
    return price0_cumulative, price1_cumulative, block_timestamp


def average_price(cumulative_start: int, cumulative_end: int, time_elapsed: int) -> Decimal:
    """Decode the average price between two accumulator observations.

    Accumulators wrap modulo 2^256, so the difference is taken modulo as well.

    Raises:
        ValueError: If time_elapsed is not positive
    """
    if time_elapsed <= 0:
        raise ValueError(f"time_elapsed must be positive: {time_elapsed}")
    delta = (cumulative_end - cumulative_start) % ACCUMULATOR_MODULUS
    return Decimal(delta // time_elapsed) / Decimal(Q112)


__all__ = ["current_block_timestamp", "current_cumulative_prices", "average_price"]
