"""Tests for the pool registry."""

import pytest

from cpamm.constants import ZERO_ADDRESS
from cpamm.errors import (
    AlreadyInitialized,
    Forbidden,
    IdenticalAssets,
    PoolExists,
    PoolNotFound,
    ZeroAsset,
)
from cpamm.models.events import PoolCreated
from cpamm.pools.addressing import compute_pool_address, sort_assets
from cpamm.pools.pool import ConstantProductPool, PoolState
from tests.helpers import ALICE, BOB, DEPLOYER, FEE_SINK


class TestCreatePool:
    """Tests for pool creation."""

    def test_creates_pool_at_predicted_address(self, registry, token_a, token_b):
        address = registry.create_pool(token_a.address, token_b.address)

        assert address == compute_pool_address(registry.address, token_a.address, token_b.address)
        pool = registry.pool_at(address)
        assert isinstance(pool, ConstantProductPool)
        assert pool.state is PoolState.ACTIVE
        assert (pool.asset0, pool.asset1) == sort_assets(token_a.address, token_b.address)

    def test_lookup_in_both_orders(self, registry, token_a, token_b):
        address = registry.create_pool(token_a.address, token_b.address)

        assert registry.get_pool(token_a.address, token_b.address) == address
        assert registry.get_pool(token_b.address, token_a.address) == address

    def test_lookup_absent_pair(self, registry, token_a, token_b):
        assert registry.get_pool(token_a.address, token_b.address) is None

    def test_address_depends_on_registry(self, chain, registry, token_a, token_b):
        """Another registry derives a different address for the same pair."""
        first = registry.create_pool(token_b.address, token_a.address)

        other = type(registry)(chain, "0x" + "12" * 20, DEPLOYER)
        chain.deploy(other)
        assert other.create_pool(token_a.address, token_b.address) != first

    @pytest.mark.parametrize("reverse", [False, True])
    def test_second_creation_fails(self, registry, token_a, token_b, reverse):
        registry.create_pool(token_a.address, token_b.address)
        pair = (token_b.address, token_a.address) if reverse else (token_a.address, token_b.address)

        with pytest.raises(PoolExists):
            registry.create_pool(*pair)
        assert registry.pool_count() == 1

    def test_identical_assets(self, registry, token_a):
        with pytest.raises(IdenticalAssets):
            registry.create_pool(token_a.address, token_a.address)

    def test_zero_asset(self, registry, token_a):
        with pytest.raises(ZeroAsset):
            registry.create_pool(token_a.address, ZERO_ADDRESS)

    def test_emits_pool_created(self, chain, registry, token_a, token_b, token_c):
        first = registry.create_pool(token_a.address, token_b.address)
        second = registry.create_pool(token_b.address, token_c.address)

        events = chain.events_of(PoolCreated, registry.address)
        assert [e.pool for e in events] == [first, second]
        assert [e.pool_count for e in events] == [1, 2]
        assert (events[0].asset0, events[0].asset1) == sort_assets(
            token_a.address, token_b.address
        )

    def test_enumeration(self, registry, token_a, token_b, token_c):
        first = registry.create_pool(token_a.address, token_b.address)
        second = registry.create_pool(token_a.address, token_c.address)

        assert registry.pool_count() == 2
        assert registry.all_pools(0) == first
        assert registry.all_pools(1) == second
        assert [p.address for p in registry.pools()] == [first, second]
        with pytest.raises(IndexError):
            registry.all_pools(2)

    def test_pool_at_unknown_address(self, registry):
        with pytest.raises(PoolNotFound):
            registry.pool_at("0x" + "99" * 20)

    def test_pool_at_non_pool_contract(self, registry, token_a):
        with pytest.raises(PoolNotFound):
            registry.pool_at(token_a.address)


class TestPoolInitialization:
    """Only the registry binds a pool to its pair, exactly once."""

    def test_initialize_from_outsider(self, registry, token_a, token_b):
        pool = registry.pool_at(registry.create_pool(token_a.address, token_b.address))

        with pytest.raises(Forbidden):
            pool.initialize(token_a.address, token_b.address, sender=ALICE)

    def test_initialize_twice(self, registry, token_a, token_b):
        pool = registry.pool_at(registry.create_pool(token_a.address, token_b.address))

        with pytest.raises(AlreadyInitialized):
            pool.initialize(token_a.address, token_b.address, sender=registry.address)


class TestFeeGovernance:
    """Tests for the protocol-fee recipient and its setter."""

    def test_defaults(self, registry):
        assert registry.fee_to is None
        assert registry.fee_to_setter == DEPLOYER

    def test_set_fee_to(self, registry):
        registry.set_fee_to(FEE_SINK, sender=DEPLOYER)
        assert registry.fee_to == FEE_SINK

        registry.set_fee_to(None, sender=DEPLOYER)
        assert registry.fee_to is None

    def test_set_fee_to_forbidden(self, registry):
        with pytest.raises(Forbidden):
            registry.set_fee_to(FEE_SINK, sender=ALICE)
        assert registry.fee_to is None

    def test_hand_over_setter(self, registry):
        registry.set_fee_to_setter(ALICE, sender=DEPLOYER)

        with pytest.raises(Forbidden):
            registry.set_fee_to(FEE_SINK, sender=DEPLOYER)
        registry.set_fee_to(FEE_SINK, sender=ALICE)
        assert registry.fee_to == FEE_SINK

    def test_set_fee_to_setter_forbidden(self, registry):
        with pytest.raises(Forbidden):
            registry.set_fee_to_setter(BOB, sender=BOB)
