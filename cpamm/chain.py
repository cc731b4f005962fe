"""In-process execution environment for the exchange engine.

A Chain holds everything that exists outside a single contract: the logical
clock, native-asset balances, the table of deployed contracts and the event
log. It also provides ``atomic()``, which turns any block of contract calls
into an all-or-nothing unit: when the block raises, every contract, balance,
nonce and event touched inside it is restored to its prior value.

Rollback works from an undo journal rather than from copies of the whole
chain. Every state write inside an open block first records how to reverse
itself, so the cost of a block follows the entries it touches, not the
number of holders or contracts on the chain.

Execution is single-threaded. Sequencing requests is the caller's job; the
chain only guarantees that each one applies fully or not at all.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, MutableMapping
from contextlib import contextmanager
from functools import partial
from typing import Any, TypeVar

import structlog
from eth_abi.packed import encode_packed
from eth_utils import keccak

from cpamm.errors import InsufficientBalance
from cpamm.models.events import Event
from cpamm.models.types import address_bytes, normalize_address

logger = structlog.get_logger()

E = TypeVar("E", bound=Event)
C = TypeVar("C", bound="Contract")

Undo = Callable[[], object]


def _undo_entry(mapping: MutableMapping[Any, Any], key: Any) -> Undo:
    if key in mapping:
        return partial(mapping.__setitem__, key, mapping[key])
    return partial(mapping.pop, key, None)


class Contract:
    """Base class for stateful components deployed on a Chain.

    Subclasses write their mutable state through ``_assign`` and
    ``_assign_entry`` so that an enclosing ``Chain.atomic()`` block can undo
    the write. References to other contracts and to the chain are not state.
    """

    def __init__(self, chain: Chain, address: str) -> None:
        self.chain = chain
        self.address = normalize_address(address, validate=True)

    def _assign(self, name: str, value: Any) -> None:
        """Set an attribute, journaling its previous value."""
        self.chain.journal(partial(setattr, self, name, getattr(self, name)))
        setattr(self, name, value)

    def _assign_entry(self, mapping: MutableMapping[Any, Any], key: Any, value: Any) -> None:
        """Set one entry of a state mapping, journaling its previous value or absence."""
        self.chain.write_entry(mapping, key, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


class Chain:
    """Logical clock, native ledger, contract table and event log.

    The event log only grows while the chain runs; long-lived owners read it
    incrementally with ``events_since`` and drop what they have consumed with
    ``prune_events``.

    Args:
        timestamp: Initial logical time in seconds.
    """

    def __init__(self, timestamp: int = 1) -> None:
        if timestamp < 0:
            raise ValueError(f"Timestamp cannot be negative: {timestamp}")
        self.timestamp = timestamp
        self.events: list[Event] = []
        self._native: dict[str, int] = {}
        self._contracts: dict[str, Contract] = {}
        self._nonces: dict[str, int] = {}
        # one undo list per open atomic() block, innermost last
        self._frames: list[list[Undo]] = []

    # --- Clock ---

    def advance_time(self, seconds: int) -> int:
        """Move the logical clock forward and return the new timestamp."""
        if seconds < 0:
            raise ValueError(f"Clock cannot move backwards: {seconds}")
        self._set_clock(self.timestamp + seconds)
        return self.timestamp

    def set_timestamp(self, timestamp: int) -> None:
        """Jump the logical clock to an absolute, non-decreasing time."""
        if timestamp < self.timestamp:
            raise ValueError(f"Clock cannot move backwards: {timestamp} < {self.timestamp}")
        self._set_clock(timestamp)

    def _set_clock(self, timestamp: int) -> None:
        self.journal(partial(setattr, self, "timestamp", self.timestamp))
        self.timestamp = timestamp

    # --- Contracts ---

    def next_address(self, deployer: str) -> str:
        """Derive a fresh address from a deployer and its deployment nonce."""
        deployer = normalize_address(deployer, validate=True)
        nonce = self._nonces.get(deployer, 0)
        self.write_entry(self._nonces, deployer, nonce + 1)
        digest = keccak(encode_packed(["address", "uint64"], [address_bytes(deployer), nonce]))
        return "0x" + digest[12:].hex()

    def deploy(self, contract: C) -> C:
        """Register a contract at its address.

        Raises:
            ValueError: If the address is already occupied
        """
        if contract.address in self._contracts:
            raise ValueError(f"Address already in use: {contract.address}")
        self.write_entry(self._contracts, contract.address, contract)
        logger.debug("contract_deployed", kind=type(contract).__name__, address=contract.address)
        return contract

    def contract(self, address: str) -> Contract | None:
        """Look up a deployed contract, or None if nothing lives there."""
        return self._contracts.get(normalize_address(address))

    def is_deployed(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    # --- Native asset ---

    def mint_native(self, address: str, amount: int) -> None:
        """Credit native balance out of thin air (genesis allocation)."""
        if amount < 0:
            raise ValueError(f"Amount cannot be negative: {amount}")
        address = normalize_address(address, validate=True)
        self.write_entry(self._native, address, self._native.get(address, 0) + amount)

    def native_balance_of(self, address: str) -> int:
        return self._native.get(normalize_address(address), 0)

    def transfer_native(self, sender: str, to: str, amount: int) -> None:
        """Move native balance between accounts.

        Raises:
            InsufficientBalance: If sender holds less than amount
        """
        if amount < 0:
            raise ValueError(f"Amount cannot be negative: {amount}")
        sender = normalize_address(sender, validate=True)
        to = normalize_address(to, validate=True)
        balance = self._native.get(sender, 0)
        if balance < amount:
            raise InsufficientBalance(f"Native balance {balance} of {sender} below {amount}")
        self.write_entry(self._native, sender, balance - amount)
        self.write_entry(self._native, to, self._native.get(to, 0) + amount)

    # --- Events ---

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def events_of(self, kind: type[E], address: str | None = None) -> list[E]:
        """Events of one type, optionally restricted to a single emitter."""
        emitter = normalize_address(address) if address is not None else None
        return [
            e
            for e in self.events
            if isinstance(e, kind) and (emitter is None or e.address == emitter)
        ]

    def events_since(self, index: int) -> list[Event]:
        """Events appended after the first ``index`` entries of the log."""
        if index < 0:
            raise ValueError(f"Event index cannot be negative: {index}")
        return self.events[index:]

    def prune_events(self) -> int:
        """Drop the whole event log and return how many events were dropped.

        Raises:
            RuntimeError: If an atomic() block is open, since its rollback
                depends on the log length
        """
        if self._frames:
            raise RuntimeError("Cannot prune events inside an atomic block")
        dropped = len(self.events)
        self.events.clear()
        logger.debug("events_pruned", dropped=dropped)
        return dropped

    # --- Atomicity ---

    def journal(self, undo: Undo) -> None:
        """Record how to reverse a write in the innermost open block.

        Outside any atomic() block writes are final and nothing is kept.
        """
        if self._frames:
            self._frames[-1].append(undo)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run a block as one all-or-nothing unit.

        On any exception, contract state, native balances, the contract
        table, nonces, clock and event log are restored, then the exception
        propagates unchanged. Blocks nest; an inner rollback leaves the
        outer block's earlier effects in place, and an inner commit hands
        its undo entries to the outer block.
        """
        undo: list[Undo] = []
        event_count = len(self.events)
        self._frames.append(undo)
        try:
            yield
        except Exception as err:
            self._frames.pop()
            for step in reversed(undo):
                step()
            discarded = len(self.events) - event_count
            del self.events[event_count:]
            logger.debug(
                "atomic_rollback",
                error=type(err).__name__,
                writes_undone=len(undo),
                events_discarded=discarded,
            )
            raise
        else:
            self._frames.pop()
            if self._frames:
                self._frames[-1].extend(undo)

    def write_entry(self, mapping: MutableMapping[Any, Any], key: Any, value: Any) -> None:
        """Set mapping[key], journaling the previous value in the open block."""
        self.journal(_undo_entry(mapping, key))
        mapping[key] = value
