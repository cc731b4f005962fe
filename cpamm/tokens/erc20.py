"""Fungible token ledger.

Balances and allowances follow the usual fungible-token rules: transfers
debit the sender, delegated transfers also debit the spender's allowance
unless it is set to the maximum uint256 value, and minting/burning are
recorded as transfers from/to the zero address.
"""

from __future__ import annotations

import structlog

from cpamm.chain import Chain, Contract
from cpamm.constants import ZERO_ADDRESS
from cpamm.errors import InsufficientAllowance, InsufficientBalance
from cpamm.models.events import Approval, Transfer
from cpamm.models.types import normalize_address
from cpamm.safe_int import UINT256_MAX, S

logger = structlog.get_logger()


class Token(Contract):
    """A fungible asset ledger deployed on a Chain.

    Args:
        chain: Chain the token lives on
        address: Token address
        name: Human readable name
        symbol: Ticker symbol
        decimals: Display precision
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 18,
    ) -> None:
        super().__init__(chain, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}

    def balance_of(self, holder: str) -> int:
        return self._balances.get(normalize_address(holder), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        """Allow spender to move up to amount of sender's tokens."""
        owner = normalize_address(sender, validate=True)
        spender = normalize_address(spender, validate=True)
        self._assign_entry(self._allowances, (owner, spender), S(amount).value)
        self.chain.emit(Approval(address=self.address, owner=owner, spender=spender, value=amount))
        return True

    def transfer(self, to: str, amount: int, *, sender: str) -> bool:
        """Move amount from sender to to."""
        self._transfer(sender, to, amount)
        return True

    def transfer_from(self, owner: str, to: str, amount: int, *, sender: str) -> bool:
        """Move amount from owner to to, spending sender's allowance.

        Raises:
            InsufficientAllowance: If sender may not move that much
        """
        owner = normalize_address(owner, validate=True)
        spender = normalize_address(sender, validate=True)
        allowed = self.allowance(owner, spender)
        if allowed != UINT256_MAX:
            if allowed < amount:
                raise InsufficientAllowance(
                    f"{self.symbol}: allowance {allowed} of {spender} below {amount}"
                )
            self._assign_entry(self._allowances, (owner, spender), allowed - amount)
        self._transfer(owner, to, amount)
        return True

    def mint(self, to: str, amount: int) -> None:
        """Issue new tokens (test and genesis helper)."""
        self._mint(to, amount)

    # --- Internal ledger moves ---

    def _transfer(self, sender: str, to: str, amount: int) -> None:
        sender = normalize_address(sender, validate=True)
        to = normalize_address(to, validate=True)
        self._debit(sender, amount)
        self._credit(to, amount)
        self.chain.emit(Transfer(address=self.address, sender=sender, to=to, value=amount))

    def _mint(self, to: str, amount: int) -> None:
        to = normalize_address(to, validate=True)
        self._assign("total_supply", (S(self.total_supply) + S(amount)).value)
        self._credit(to, amount)
        self.chain.emit(Transfer(address=self.address, sender=ZERO_ADDRESS, to=to, value=amount))

    def _burn(self, holder: str, amount: int) -> None:
        holder = normalize_address(holder, validate=True)
        self._debit(holder, amount)
        self._assign("total_supply", (S(self.total_supply) - S(amount)).value)
        self.chain.emit(
            Transfer(address=self.address, sender=holder, to=ZERO_ADDRESS, value=amount)
        )

    def _debit(self, holder: str, amount: int) -> None:
        balance = self._balances.get(holder, 0)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: balance {balance} of {holder} below {amount}"
            )
        self._assign_entry(self._balances, holder, (S(balance) - S(amount)).value)

    def _credit(self, holder: str, amount: int) -> None:
        balance = self._balances.get(holder, 0)
        self._assign_entry(self._balances, holder, (S(balance) + S(amount)).value)


class FeeOnTransferToken(Token):
    """Token that burns a share of every plain or delegated transfer.

    Mints and burns are not taxed. Used to exercise the router paths that
    measure actual receipts instead of trusting nominal amounts.

    Args:
        fee_bps: Share of each transfer destroyed, in basis points
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        fee_bps: int = 100,
    ) -> None:
        super().__init__(chain, address, name, symbol, decimals)
        if not 0 <= fee_bps < 10_000:
            raise ValueError(f"fee_bps must be in [0, 10000): {fee_bps}")
        self.fee_bps = fee_bps

    def _transfer(self, sender: str, to: str, amount: int) -> None:
        fee = amount * self.fee_bps // 10_000
        if fee > 0:
            self._burn(sender, fee)
        super()._transfer(sender, to, amount - fee)


def deploy_token(
    chain: Chain,
    deployer: str,
    name: str,
    symbol: str,
    initial_supply: int = 0,
    decimals: int = 18,
) -> Token:
    """Deploy a Token at a fresh address and mint the initial supply to the deployer."""
    token = chain.deploy(Token(chain, chain.next_address(deployer), name, symbol, decimals))
    if initial_supply:
        token.mint(deployer, initial_supply)
    logger.info("token_deployed", symbol=symbol, address=token.address, supply=initial_supply)
    return token
