"""Router: safe, multi-step entry points over the pools.

The router holds no state of its own. Every entry point checks its deadline,
then runs inside ``chain.atomic()`` so that a failure in any hop or any
slippage check undoes every transfer, mint, burn and swap of the call.

Callers approve the router on the assets they spend; the router pulls them
straight into the first pool. Intermediate hop outputs go directly to the
next pool in the path and never pass through the router.

Native-asset variants wrap the supplied ``value`` (or unwrap the output)
through the wrapped-native token.
"""

from __future__ import annotations

import structlog

from cpamm.amm import constant_product
from cpamm.chain import Chain, Contract
from cpamm.errors import (
    ExcessiveInputAmount,
    Expired,
    InsufficientAAmount,
    InsufficientBAmount,
    InsufficientOutputAmount,
    InvalidPath,
)
from cpamm.models.types import normalize_address
from cpamm.pools.addressing import sort_assets
from cpamm.pools.pool import ConstantProductPool
from cpamm.pools.registry import PoolRegistry
from cpamm.routing import library
from cpamm.tokens.erc20 import Token
from cpamm.tokens.wrapped import WrappedNative

logger = structlog.get_logger()


class Router(Contract):
    """Stateless orchestration of pool operations.

    Args:
        chain: Chain the router is deployed on
        address: Router address; callers approve it as spender
        registry: Registry whose pools the router trades against
        wrapped_native: Token used for the native-asset legs
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        registry: PoolRegistry,
        wrapped_native: WrappedNative,
    ) -> None:
        super().__init__(chain, address)
        self.registry = registry
        self.wrapped_native = wrapped_native

    # --- Quoting ---

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        return constant_product.quote(amount_a, reserve_a, reserve_b)

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        return constant_product.get_amount_out(amount_in, reserve_in, reserve_out)

    def get_amount_in(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        return constant_product.get_amount_in(amount_out, reserve_in, reserve_out)

    def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        return library.get_amounts_out(self.registry, amount_in, path)

    def get_amounts_in(self, amount_out: int, path: list[str]) -> list[int]:
        return library.get_amounts_in(self.registry, amount_out, path)

    # --- Liquidity ---

    def add_liquidity(
        self,
        asset_a: str,
        asset_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> tuple[int, int, int]:
        """Deposit both assets at the pool's current ratio.

        Creates the pool when the pair has none. Never takes more than the
        desired amount of either asset.

        Returns:
            (amount_a, amount_b, liquidity)

        Raises:
            Expired: If the deadline has passed
            InsufficientAAmount: If the chosen amount of A is below amount_a_min
            InsufficientBAmount: If the chosen amount of B is below amount_b_min
        """
        self._ensure(deadline)
        with self.chain.atomic():
            amount_a, amount_b = self._add_liquidity(
                asset_a, asset_b, amount_a_desired, amount_b_desired, amount_a_min, amount_b_min
            )
            pool = self._pool(asset_a, asset_b)
            self._token(asset_a).transfer_from(sender, pool.address, amount_a, sender=self.address)
            self._token(asset_b).transfer_from(sender, pool.address, amount_b, sender=self.address)
            liquidity = pool.mint(to, sender=self.address)

        logger.info(
            "liquidity_added",
            pool=pool.address,
            provider=sender,
            amount_a=amount_a,
            amount_b=amount_b,
            liquidity=liquidity,
        )
        return amount_a, amount_b, liquidity

    def add_liquidity_native(
        self,
        asset: str,
        amount_asset_desired: int,
        amount_asset_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> tuple[int, int, int]:
        """Deposit an asset against native balance.

        ``value`` is the native amount offered; whatever the pool ratio does
        not need is refunded to the sender.

        Returns:
            (amount_asset, amount_native, liquidity)
        """
        self._ensure(deadline)
        wrapped = self.wrapped_native
        with self.chain.atomic():
            amount_asset, amount_native = self._add_liquidity(
                asset,
                wrapped.address,
                amount_asset_desired,
                value,
                amount_asset_min,
                amount_native_min,
            )
            pool = self._pool(asset, wrapped.address)
            self._token(asset).transfer_from(
                sender, pool.address, amount_asset, sender=self.address
            )
            self._wrap(sender, value)
            wrapped.transfer(pool.address, amount_native, sender=self.address)
            liquidity = pool.mint(to, sender=self.address)
            if value > amount_native:
                self._unwrap(sender, value - amount_native)

        logger.info(
            "liquidity_added",
            pool=pool.address,
            provider=sender,
            amount_a=amount_asset,
            amount_b=amount_native,
            liquidity=liquidity,
            refunded=value - amount_native,
        )
        return amount_asset, amount_native, liquidity

    def remove_liquidity(
        self,
        asset_a: str,
        asset_b: str,
        liquidity: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Redeem claim tokens for both assets.

        Returns:
            (amount_a, amount_b) sent to ``to``

        Raises:
            Expired: If the deadline has passed
            PoolNotFound: If the pair has no pool
            InsufficientAAmount: If less than amount_a_min of A comes out
            InsufficientBAmount: If less than amount_b_min of B comes out
        """
        self._ensure(deadline)
        with self.chain.atomic():
            amount_a, amount_b = self._remove_liquidity(
                asset_a, asset_b, liquidity, amount_a_min, amount_b_min, to, sender
            )
        return amount_a, amount_b

    def remove_liquidity_native(
        self,
        asset: str,
        liquidity: int,
        amount_asset_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Redeem claim tokens for an asset and native balance.

        Returns:
            (amount_asset, amount_native) sent to ``to``
        """
        self._ensure(deadline)
        with self.chain.atomic():
            amount_asset, amount_native = self._remove_liquidity(
                asset,
                self.wrapped_native.address,
                liquidity,
                amount_asset_min,
                amount_native_min,
                self.address,
                sender,
            )
            self._token(asset).transfer(to, amount_asset, sender=self.address)
            self._unwrap(to, amount_native)
        return amount_asset, amount_native

    # --- Swaps ---

    def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Sell exactly amount_in of path[0] for at least amount_out_min of path[-1].

        Returns:
            Amounts at every step of the path

        Raises:
            Expired: If the deadline has passed
            InvalidPath: If the path has fewer than two assets
            InsufficientOutputAmount: If the final output is below amount_out_min
        """
        self._ensure(deadline)
        with self.chain.atomic():
            amounts = self.get_amounts_out(amount_in, path)
            self._check_output(amounts[-1], amount_out_min)
            self._pull(path[0], sender, self._pool(path[0], path[1]).address, amounts[0])
            self._swap(amounts, path, to)
        self._log_swap(path, amounts, sender, to)
        return amounts

    def swap_tokens_for_exact_tokens(
        self,
        amount_out: int,
        amount_in_max: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Buy exactly amount_out of path[-1] for at most amount_in_max of path[0].

        Raises:
            Expired: If the deadline has passed
            InvalidPath: If the path has fewer than two assets
            ExcessiveInputAmount: If the required input exceeds amount_in_max
        """
        self._ensure(deadline)
        with self.chain.atomic():
            amounts = self.get_amounts_in(amount_out, path)
            self._check_input(amounts[0], amount_in_max)
            self._pull(path[0], sender, self._pool(path[0], path[1]).address, amounts[0])
            self._swap(amounts, path, to)
        self._log_swap(path, amounts, sender, to)
        return amounts

    def swap_exact_native_for_tokens(
        self,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> list[int]:
        """Sell exactly ``value`` native balance along a path starting at the wrapped asset."""
        self._ensure(deadline)
        with self.chain.atomic():
            self._require_native_leg(path, first=True)
            amounts = self.get_amounts_out(value, path)
            self._check_output(amounts[-1], amount_out_min)
            self._wrap(sender, amounts[0])
            self.wrapped_native.transfer(
                self._pool(path[0], path[1]).address, amounts[0], sender=self.address
            )
            self._swap(amounts, path, to)
        self._log_swap(path, amounts, sender, to)
        return amounts

    def swap_tokens_for_exact_native(
        self,
        amount_out: int,
        amount_in_max: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Buy exactly amount_out native balance along a path ending at the wrapped asset."""
        self._ensure(deadline)
        with self.chain.atomic():
            self._require_native_leg(path, first=False)
            amounts = self.get_amounts_in(amount_out, path)
            self._check_input(amounts[0], amount_in_max)
            self._pull(path[0], sender, self._pool(path[0], path[1]).address, amounts[0])
            self._swap(amounts, path, self.address)
            self._unwrap(to, amounts[-1])
        self._log_swap(path, amounts, sender, to)
        return amounts

    def swap_exact_tokens_for_native(
        self,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Sell exactly amount_in of path[0] for native balance."""
        self._ensure(deadline)
        with self.chain.atomic():
            self._require_native_leg(path, first=False)
            amounts = self.get_amounts_out(amount_in, path)
            self._check_output(amounts[-1], amount_out_min)
            self._pull(path[0], sender, self._pool(path[0], path[1]).address, amounts[0])
            self._swap(amounts, path, self.address)
            self._unwrap(to, amounts[-1])
        self._log_swap(path, amounts, sender, to)
        return amounts

    def swap_native_for_exact_tokens(
        self,
        amount_out: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> list[int]:
        """Buy exactly amount_out of path[-1] with native balance.

        ``value`` caps the input; only the amount the path needs is taken.

        Raises:
            InvalidPath: If the path does not start with the wrapped asset
            ExcessiveInputAmount: If the required input exceeds value
        """
        self._ensure(deadline)
        with self.chain.atomic():
            self._require_native_leg(path, first=True)
            amounts = self.get_amounts_in(amount_out, path)
            self._check_input(amounts[0], value)
            self._wrap(sender, amounts[0])
            self.wrapped_native.transfer(
                self._pool(path[0], path[1]).address, amounts[0], sender=self.address
            )
            self._swap(amounts, path, to)
        self._log_swap(path, amounts, sender, to)
        return amounts

    # --- Swaps for assets that tax transfers ---

    def swap_exact_tokens_for_tokens_supporting_fee_on_transfer_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> None:
        """Like swap_exact_tokens_for_tokens, measuring what each pool actually received."""
        self._ensure(deadline)
        with self.chain.atomic():
            library.check_path(path)
            self._pull(path[0], sender, self._pool(path[0], path[1]).address, amount_in)
            output = self._token(path[-1])
            balance_before = output.balance_of(to)
            self._swap_supporting_fee_on_transfer_tokens(path, to)
            self._check_output(output.balance_of(to) - balance_before, amount_out_min)

    def swap_exact_native_for_tokens_supporting_fee_on_transfer_tokens(
        self,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> None:
        """Like swap_exact_native_for_tokens, measuring what each pool actually received."""
        self._ensure(deadline)
        with self.chain.atomic():
            self._require_native_leg(path, first=True)
            self._wrap(sender, value)
            self.wrapped_native.transfer(
                self._pool(path[0], path[1]).address, value, sender=self.address
            )
            output = self._token(path[-1])
            balance_before = output.balance_of(to)
            self._swap_supporting_fee_on_transfer_tokens(path, to)
            self._check_output(output.balance_of(to) - balance_before, amount_out_min)

    def swap_exact_tokens_for_native_supporting_fee_on_transfer_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> None:
        """Like swap_exact_tokens_for_native, measuring what each pool actually received."""
        self._ensure(deadline)
        with self.chain.atomic():
            self._require_native_leg(path, first=False)
            self._pull(path[0], sender, self._pool(path[0], path[1]).address, amount_in)
            self._swap_supporting_fee_on_transfer_tokens(path, self.address)
            amount_out = self.wrapped_native.balance_of(self.address)
            self._check_output(amount_out, amount_out_min)
            self._unwrap(to, amount_out)

    # --- Internals ---

    def _ensure(self, deadline: int) -> None:
        if self.chain.timestamp > deadline:
            raise Expired(f"Deadline {deadline} passed (now {self.chain.timestamp})")

    def _add_liquidity(
        self,
        asset_a: str,
        asset_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
    ) -> tuple[int, int]:
        """Pick deposit amounts that match the pool ratio without exceeding either cap."""
        if self.registry.get_pool(asset_a, asset_b) is None:
            self.registry.create_pool(asset_a, asset_b)
        reserve_a, reserve_b = library.get_reserves(self.registry, asset_a, asset_b)
        if reserve_a == 0 and reserve_b == 0:
            return amount_a_desired, amount_b_desired

        amount_b_optimal = constant_product.quote(amount_a_desired, reserve_a, reserve_b)
        if amount_b_optimal <= amount_b_desired:
            if amount_b_optimal < amount_b_min:
                raise InsufficientBAmount(f"Optimal B {amount_b_optimal} below {amount_b_min}")
            return amount_a_desired, amount_b_optimal

        amount_a_optimal = constant_product.quote(amount_b_desired, reserve_b, reserve_a)
        # holds whenever amount_b_optimal exceeded amount_b_desired
        assert amount_a_optimal <= amount_a_desired
        if amount_a_optimal < amount_a_min:
            raise InsufficientAAmount(f"Optimal A {amount_a_optimal} below {amount_a_min}")
        return amount_a_optimal, amount_b_desired

    def _remove_liquidity(
        self,
        asset_a: str,
        asset_b: str,
        liquidity: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        sender: str,
    ) -> tuple[int, int]:
        pool = self._pool(asset_a, asset_b)
        pool.transfer_from(sender, pool.address, liquidity, sender=self.address)
        amount0, amount1 = pool.burn(to, sender=self.address)
        asset0, _ = sort_assets(asset_a, asset_b)
        if normalize_address(asset_a) == asset0:
            amount_a, amount_b = amount0, amount1
        else:
            amount_a, amount_b = amount1, amount0
        if amount_a < amount_a_min:
            raise InsufficientAAmount(f"Received {amount_a} of A, below {amount_a_min}")
        if amount_b < amount_b_min:
            raise InsufficientBAmount(f"Received {amount_b} of B, below {amount_b_min}")

        logger.info(
            "liquidity_removed",
            pool=pool.address,
            provider=sender,
            liquidity=liquidity,
            amount_a=amount_a,
            amount_b=amount_b,
        )
        return amount_a, amount_b

    def _swap(self, amounts: list[int], path: list[str], to: str) -> None:
        """Execute a precomputed amount vector hop by hop.

        The first pool must already hold amounts[0] of path[0].
        """
        for i, (asset_in, asset_out) in enumerate(zip(path, path[1:])):
            pool = self._pool(asset_in, asset_out)
            amount_out = amounts[i + 1]
            if normalize_address(asset_out) == pool.asset0:
                amount0_out, amount1_out = amount_out, 0
            else:
                amount0_out, amount1_out = 0, amount_out
            recipient = self._pool(asset_out, path[i + 2]).address if i < len(path) - 2 else to
            pool.swap(amount0_out, amount1_out, recipient, sender=self.address)

    def _swap_supporting_fee_on_transfer_tokens(self, path: list[str], to: str) -> None:
        """Execute a path, deriving each hop's input from the pool's balance.

        The first pool must already hold the input of path[0].
        """
        for i, (asset_in, asset_out) in enumerate(zip(path, path[1:])):
            pool = self._pool(asset_in, asset_out)
            reserve_in, reserve_out = pool.get_reserves_for(asset_in)
            amount_in = self._token(asset_in).balance_of(pool.address) - reserve_in
            amount_out = constant_product.get_amount_out(amount_in, reserve_in, reserve_out)
            if normalize_address(asset_out) == pool.asset0:
                amount0_out, amount1_out = amount_out, 0
            else:
                amount0_out, amount1_out = 0, amount_out
            recipient = self._pool(asset_out, path[i + 2]).address if i < len(path) - 2 else to
            pool.swap(amount0_out, amount1_out, recipient, sender=self.address)

    def _pool(self, asset_a: str, asset_b: str) -> ConstantProductPool:
        return self.registry.pool_at(library.pool_for(self.registry.address, asset_a, asset_b))

    def _token(self, address: str) -> Token:
        token = self.chain.contract(address)
        if not isinstance(token, Token):
            raise LookupError(f"No token deployed at {address}")
        return token

    def _pull(self, asset: str, owner: str, to: str, amount: int) -> None:
        self._token(asset).transfer_from(owner, to, amount, sender=self.address)

    def _wrap(self, sender: str, amount: int) -> None:
        """Take amount of sender's native balance and hold it as wrapped tokens."""
        self.chain.transfer_native(sender, self.address, amount)
        self.wrapped_native.deposit(amount, sender=self.address)

    def _unwrap(self, to: str, amount: int) -> None:
        """Unwrap amount of the router's wrapped tokens and pay it out natively."""
        self.wrapped_native.withdraw(amount, sender=self.address)
        self.chain.transfer_native(self.address, to, amount)

    def _require_native_leg(self, path: list[str], *, first: bool) -> None:
        library.check_path(path)
        leg = path[0] if first else path[-1]
        if normalize_address(leg) != self.wrapped_native.address:
            position = "start" if first else "end"
            raise InvalidPath(f"Path must {position} with the wrapped native asset, got {leg}")

    @staticmethod
    def _check_output(amount_out: int, amount_out_min: int) -> None:
        if amount_out < amount_out_min:
            raise InsufficientOutputAmount(f"Output {amount_out} below minimum {amount_out_min}")

    @staticmethod
    def _check_input(amount_in: int, amount_in_max: int) -> None:
        if amount_in > amount_in_max:
            raise ExcessiveInputAmount(f"Input {amount_in} above maximum {amount_in_max}")

    @staticmethod
    def _log_swap(path: list[str], amounts: list[int], sender: str, to: str) -> None:
        logger.info(
            "swap_routed",
            path=path,
            amount_in=amounts[0],
            amount_out=amounts[-1],
            hops=len(path) - 1,
            sender=sender,
            to=to,
        )


__all__ = ["Router"]
