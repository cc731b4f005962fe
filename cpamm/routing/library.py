"""Stateless helpers shared by the router and the quoting API.

Pool addresses are derived rather than looked up, so every helper works
from the registry address and the asset pair alone. Reserves are read from
the pool deployed at the derived address.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cpamm.amm import constant_product
from cpamm.errors import InvalidPath
from cpamm.models.types import normalize_address
from cpamm.pools.addressing import compute_pool_address, sort_assets

if TYPE_CHECKING:
    from cpamm.pools.registry import PoolRegistry


def pool_for(registry_address: str, asset_a: str, asset_b: str) -> str:
    """Address of the pool for a pair, whether or not it has been created."""
    return compute_pool_address(registry_address, asset_a, asset_b)


def get_reserves(registry: PoolRegistry, asset_a: str, asset_b: str) -> tuple[int, int]:
    """Reserves of the pair's pool ordered as (reserve_a, reserve_b).

    Raises:
        PoolNotFound: If the pair has no pool
    """
    asset0, _ = sort_assets(asset_a, asset_b)
    pool = registry.pool_at(pool_for(registry.address, asset_a, asset_b))
    reserve0, reserve1, _ = pool.get_reserves()
    if normalize_address(asset_a) == asset0:
        return reserve0, reserve1
    return reserve1, reserve0


def check_path(path: list[str]) -> None:
    if len(path) < 2:
        raise InvalidPath(f"Path needs at least two assets, got {len(path)}")


def get_amounts_out(registry: PoolRegistry, amount_in: int, path: list[str]) -> list[int]:
    """Chain get_amount_out forward along a path.

    Returns:
        amounts with amounts[0] == amount_in and amounts[i + 1] the output of hop i

    Raises:
        InvalidPath: If the path has fewer than two assets
    """
    check_path(path)
    amounts = [amount_in]
    for asset_in, asset_out in zip(path, path[1:]):
        reserve_in, reserve_out = get_reserves(registry, asset_in, asset_out)
        amounts.append(constant_product.get_amount_out(amounts[-1], reserve_in, reserve_out))
    return amounts


def get_amounts_in(registry: PoolRegistry, amount_out: int, path: list[str]) -> list[int]:
    """Chain get_amount_in backward along a path.

    Returns:
        amounts with amounts[-1] == amount_out and amounts[i] the input of hop i

    Raises:
        InvalidPath: If the path has fewer than two assets
    """
    check_path(path)
    amounts = [amount_out]
    for asset_in, asset_out in reversed(list(zip(path, path[1:]))):
        reserve_in, reserve_out = get_reserves(registry, asset_in, asset_out)
        amounts.insert(0, constant_product.get_amount_in(amounts[0], reserve_in, reserve_out))
    return amounts


__all__ = ["pool_for", "get_reserves", "check_path", "get_amounts_out", "get_amounts_in"]
