"""Pool management package.

Provides the constant-product pool, the registry that creates and locates
pools, deterministic pool addressing and TWAP helpers.
"""

from .addressing import POOL_INIT_CODE_HASH, compute_pool_address, sort_assets
from .oracle import average_price, current_cumulative_prices
from .pool import ConstantProductPool, PoolState, SwapCallback
from .registry import PoolRegistry

__all__ = [
    "ConstantProductPool",
    "PoolState",
    "SwapCallback",
    "PoolRegistry",
    "POOL_INIT_CODE_HASH",
    "compute_pool_address",
    "sort_assets",
    "current_cumulative_prices",
    "average_price",
]
