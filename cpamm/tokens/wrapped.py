"""Wrapped native asset.

A token backed 1:1 by native balance held at the token's own address.
Wrapping and unwrapping emit Deposit/Withdrawal rather than Transfer.
"""

from __future__ import annotations

from cpamm.chain import Chain
from cpamm.models.events import Deposit, Withdrawal
from cpamm.models.types import normalize_address
from cpamm.safe_int import S
from cpamm.tokens.erc20 import Token


class WrappedNative(Token):
    """Token whose supply always equals the native balance it holds."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str = "Wrapped Native",
        symbol: str = "WNATIVE",
    ) -> None:
        super().__init__(chain, address, name, symbol, 18)

    def deposit(self, value: int, *, sender: str) -> None:
        """Wrap value of sender's native balance."""
        sender = normalize_address(sender, validate=True)
        self.chain.transfer_native(sender, self.address, value)
        self._assign("total_supply", (S(self.total_supply) + S(value)).value)
        self._credit(sender, value)
        self.chain.emit(Deposit(address=self.address, dst=sender, value=value))

    def withdraw(self, amount: int, *, sender: str) -> None:
        """Unwrap amount back to sender's native balance."""
        sender = normalize_address(sender, validate=True)
        self._debit(sender, amount)
        self._assign("total_supply", (S(self.total_supply) - S(amount)).value)
        self.chain.transfer_native(self.address, sender, amount)
        self.chain.emit(Withdrawal(address=self.address, src=sender, value=amount))
