"""Canonical pair ordering and content-addressed pool identity.

A pool's address depends only on the registry address and the sorted asset
pair, using the CREATE2 layout:

    keccak256(0xff ++ registry ++ keccak256(asset0 ++ asset1) ++ POOL_INIT_CODE_HASH)[12:]

Any caller can therefore compute where a pool lives (or will live) without
asking the registry.
"""

from __future__ import annotations

from eth_abi.packed import encode_packed
from eth_utils import keccak

from cpamm.constants import ZERO_ADDRESS
from cpamm.errors import IdenticalAssets, ZeroAsset
from cpamm.models.types import address_bytes, normalize_address

# Identity of the pool implementation; changes whenever pool semantics do
POOL_INIT_CODE_HASH = keccak(text="cpamm.pools.ConstantProductPool/v1")

CREATE2_PREFIX = b"\xff"


def sort_assets(asset_a: str, asset_b: str) -> tuple[str, str]:
    """Return the pair ordered by byte value.

    Raises:
        IdenticalAssets: If both identifiers are equal
        ZeroAsset: If either identifier is the zero address
    """
    a = normalize_address(asset_a, validate=True)
    b = normalize_address(asset_b, validate=True)
    if a == b:
        raise IdenticalAssets(f"Pair uses the same asset twice: {a}")
    asset0, asset1 = (a, b) if address_bytes(a) < address_bytes(b) else (b, a)
    if asset0 == ZERO_ADDRESS:
        raise ZeroAsset("Pair includes the zero address")
    return asset0, asset1


def pool_salt(asset0: str, asset1: str) -> bytes:
    """Salt for an already-sorted pair."""
    packed = encode_packed(["address", "address"], [address_bytes(asset0), address_bytes(asset1)])
    return keccak(packed)


def compute_pool_address(
    registry_address: str,
    asset_a: str,
    asset_b: str,
    init_code_hash: bytes = POOL_INIT_CODE_HASH,
) -> str:
    """Predict the address of the pool for a pair, in either order."""
    asset0, asset1 = sort_assets(asset_a, asset_b)
    digest = keccak(
        CREATE2_PREFIX
        + address_bytes(registry_address)
        + pool_salt(asset0, asset1)
        + init_code_hash
    )
    return "0x" + digest[12:].hex()


__all__ = ["POOL_INIT_CODE_HASH", "sort_assets", "pool_salt", "compute_pool_address"]
