"""Tests for reading and decoding the pool price accumulators."""

from decimal import Decimal

import pytest

from cpamm.constants import ACCUMULATOR_MODULUS, TIMESTAMP_MODULUS
from cpamm.math import Q112, encode_uq112x112, uqdiv
from cpamm.pools.oracle import average_price, current_block_timestamp, current_cumulative_prices
from tests.helpers import ALICE, E18, ordered


@pytest.fixture
def pool(registry, token_a, token_b):
    """Pool holding 5 of asset0 for every 10 of asset1."""
    pool = registry.pool_at(registry.create_pool(token_a.address, token_b.address))
    token0, token1 = ordered(pool, token_a, token_b)
    token0.transfer(pool.address, 5 * E18, sender=ALICE)
    token1.transfer(pool.address, 10 * E18, sender=ALICE)
    pool.mint(ALICE, sender=ALICE)
    return pool


class TestCurrentBlockTimestamp:
    def test_truncates_to_32_bits(self):
        assert current_block_timestamp(TIMESTAMP_MODULUS + 5) == 5
        assert current_block_timestamp(7) == 7


class TestCurrentCumulativePrices:
    """Counterfactual accumulator reads."""

    def test_same_timestamp_returns_stored_values(self, chain, pool):
        assert current_cumulative_prices(pool) == (
            pool.price0_cumulative_last,
            pool.price1_cumulative_last,
            chain.timestamp,
        )

    def test_extrapolates_elapsed_time(self, chain, pool):
        chain.advance_time(100)

        price0, price1, timestamp = current_cumulative_prices(pool)

        assert timestamp == chain.timestamp
        assert price0 == 2 * Q112 * 100
        assert price1 == Q112 // 2 * 100

    def test_matches_sync(self, chain, pool):
        """Reading without updating agrees with what sync() then records."""
        chain.advance_time(37)
        expected = current_cumulative_prices(pool)

        pool.sync(sender=ALICE)

        assert expected == (
            pool.price0_cumulative_last,
            pool.price1_cumulative_last,
            pool.block_timestamp_last,
        )

    def test_does_not_mutate_pool(self, chain, pool):
        before = (pool.price0_cumulative_last, pool.price1_cumulative_last)
        chain.advance_time(100)

        current_cumulative_prices(pool)

        assert (pool.price0_cumulative_last, pool.price1_cumulative_last) == before

    def test_empty_pool_does_not_accumulate(self, chain, registry, token_a, token_c):
        pool = registry.pool_at(registry.create_pool(token_a.address, token_c.address))
        chain.advance_time(500)

        assert current_cumulative_prices(pool) == (0, 0, chain.timestamp)

    def test_uneven_reserves(self, chain, pool):
        reserve0, reserve1, _ = pool.get_reserves()
        chain.advance_time(3)

        price0, _, _ = current_cumulative_prices(pool)

        assert price0 == uqdiv(encode_uq112x112(reserve1), reserve0) * 3


class TestAveragePrice:
    """Decoding an average from two observations."""

    def test_average_over_window(self, chain, pool):
        start0, start1, start_ts = current_cumulative_prices(pool)
        chain.advance_time(60)
        end0, end1, end_ts = current_cumulative_prices(pool)

        assert average_price(start0, end0, end_ts - start_ts) == Decimal(2)
        assert average_price(start1, end1, end_ts - start_ts) == Decimal("0.5")

    def test_across_accumulator_wrap(self):
        start = ACCUMULATOR_MODULUS - Q112
        end = Q112

        assert average_price(start, end, 2) == Decimal(1)

    @pytest.mark.parametrize("elapsed", [0, -1])
    def test_non_positive_window(self, elapsed):
        with pytest.raises(ValueError, match="time_elapsed"):
            average_price(0, Q112, elapsed)
