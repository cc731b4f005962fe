"""Pool registry: creates pools and keeps the pair -> pool mapping.

Pools are created at most once per unordered asset pair, live at an address
derived from the registry address and the sorted pair, and are never
removed. The registry also holds the protocol-fee recipient and the
authority allowed to change it.
"""

from __future__ import annotations

import structlog

from cpamm.chain import Chain, Contract
from cpamm.errors import Forbidden, PoolExists, PoolNotFound
from cpamm.models.events import PoolCreated
from cpamm.models.types import normalize_address
from cpamm.pools.addressing import compute_pool_address, sort_assets
from cpamm.pools.pool import ConstantProductPool

logger = structlog.get_logger()


class PoolRegistry(Contract):
    """Registry of constant-product pools.

    Args:
        chain: Chain the registry is deployed on
        address: Registry address; part of every pool address it derives
        fee_to_setter: Account allowed to set the fee recipient and itself
    """

    def __init__(self, chain: Chain, address: str, fee_to_setter: str) -> None:
        super().__init__(chain, address)
        self.fee_to: str | None = None
        self.fee_to_setter = normalize_address(fee_to_setter, validate=True)
        # Creation order, index-addressable
        self._all_pools: list[str] = []
        # Both orientations of every pair
        self._pools: dict[tuple[str, str], str] = {}

    def create_pool(self, asset_a: str, asset_b: str) -> str:
        """Create the pool for a pair.

        Args:
            asset_a: One asset of the pair (any order)
            asset_b: The other asset

        Returns:
            Address of the new pool

        Raises:
            IdenticalAssets: If both assets are the same
            ZeroAsset: If either asset is the zero address
            PoolExists: If the pair already has a pool
        """
        asset0, asset1 = sort_assets(asset_a, asset_b)
        existing = self._pools.get((asset0, asset1))
        if existing is not None:
            raise PoolExists(f"Pool exists for {asset0}/{asset1}: {existing}")

        with self.chain.atomic():
            address = compute_pool_address(self.address, asset0, asset1)
            pool = self.chain.deploy(ConstantProductPool(self.chain, address, registry=self))
            pool.initialize(asset0, asset1, sender=self.address)
            self._assign_entry(self._pools, (asset0, asset1), address)
            self._assign_entry(self._pools, (asset1, asset0), address)
            self.chain.journal(self._all_pools.pop)
            self._all_pools.append(address)
            self.chain.emit(
                PoolCreated(
                    address=self.address,
                    asset0=asset0,
                    asset1=asset1,
                    pool=address,
                    pool_count=len(self._all_pools),
                )
            )

        logger.info(
            "pool_created",
            pool=address,
            asset0=asset0,
            asset1=asset1,
            pool_count=len(self._all_pools),
        )
        return address

    def get_pool(self, asset_a: str, asset_b: str) -> str | None:
        """Get the pool address for a pair (order independent), or None."""
        key = (normalize_address(asset_a), normalize_address(asset_b))
        return self._pools.get(key)

    def all_pools(self, index: int) -> str:
        """Pool address by creation index.

        Raises:
            IndexError: If no pool has that index
        """
        if not 0 <= index < len(self._all_pools):
            raise IndexError(f"No pool at index {index} (count {len(self._all_pools)})")
        return self._all_pools[index]

    def pool_count(self) -> int:
        return len(self._all_pools)

    def pool_at(self, address: str) -> ConstantProductPool:
        """Resolve a pool address to the pool object.

        Raises:
            PoolNotFound: If no pool created by this registry lives there
        """
        pool = self.chain.contract(address)
        if not isinstance(pool, ConstantProductPool) or pool.registry is not self:
            raise PoolNotFound(f"No pool of this registry at {address}")
        return pool

    def pools(self) -> list[ConstantProductPool]:
        """All pools in creation order."""
        return [self.pool_at(address) for address in self._all_pools]

    # --- Fee governance ---

    def set_fee_to(self, fee_to: str | None, *, sender: str) -> None:
        """Set (or clear, with None) the protocol-fee recipient.

        Raises:
            Forbidden: If sender is not the fee-recipient setter
        """
        self._require_setter(sender)
        self._assign(
            "fee_to", normalize_address(fee_to, validate=True) if fee_to is not None else None
        )
        logger.info("fee_to_updated", registry=self.address, fee_to=self.fee_to)

    def set_fee_to_setter(self, fee_to_setter: str, *, sender: str) -> None:
        """Hand the fee authority to another account.

        Raises:
            Forbidden: If sender is not the current fee-recipient setter
        """
        self._require_setter(sender)
        self._assign("fee_to_setter", normalize_address(fee_to_setter, validate=True))
        logger.info("fee_to_setter_updated", registry=self.address, fee_to_setter=fee_to_setter)

    def _require_setter(self, sender: str) -> None:
        if normalize_address(sender) != self.fee_to_setter:
            raise Forbidden(f"{sender} is not the fee-recipient setter")


__all__ = ["PoolRegistry"]
