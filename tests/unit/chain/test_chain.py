"""Tests for the in-process chain: clock, addresses, native ledger and atomicity."""

import pytest
import structlog

from cpamm.chain import Chain
from cpamm.errors import InsufficientBalance
from cpamm.models.events import Transfer
from cpamm.tokens.erc20 import Token, deploy_token
from tests.helpers import ALICE, BOB, DEPLOYER


@pytest.fixture
def token(chain):
    return deploy_token(chain, DEPLOYER, "Test", "TST", initial_supply=1_000)


class TestClock:
    def test_negative_genesis(self):
        with pytest.raises(ValueError, match="negative"):
            Chain(timestamp=-1)

    def test_advance(self):
        chain = Chain(timestamp=10)
        assert chain.advance_time(5) == 15
        assert chain.timestamp == 15

    def test_cannot_move_backwards(self):
        chain = Chain(timestamp=10)
        with pytest.raises(ValueError):
            chain.advance_time(-1)
        with pytest.raises(ValueError):
            chain.set_timestamp(9)
        chain.set_timestamp(10)
        assert chain.timestamp == 10


class TestContracts:
    """Address derivation and the contract table."""

    def test_next_address_is_deterministic(self):
        first, second = Chain(), Chain()
        assert first.next_address(DEPLOYER) == second.next_address(DEPLOYER)

    def test_next_address_advances_nonce(self):
        chain = Chain()
        addresses = {chain.next_address(DEPLOYER) for _ in range(3)}
        assert len(addresses) == 3

    def test_next_address_depends_on_deployer(self):
        chain = Chain()
        assert chain.next_address(ALICE) != chain.next_address(BOB)

    def test_duplicate_deploy(self, chain, token):
        with pytest.raises(ValueError, match="already in use"):
            chain.deploy(Token(chain, token.address, "Other", "OTH"))

    def test_lookup_normalizes_case(self, chain, token):
        upper = "0x" + token.address[2:].upper()
        assert chain.contract(upper) is token
        assert chain.is_deployed(upper)
        assert chain.contract("0x" + "77" * 20) is None


class TestNativeLedger:
    def test_mint_and_transfer(self):
        chain = Chain()
        chain.mint_native(ALICE, 100)
        chain.transfer_native(ALICE, BOB, 40)

        assert chain.native_balance_of(ALICE) == 60
        assert chain.native_balance_of(BOB) == 40

    def test_insufficient_balance(self):
        chain = Chain()
        chain.mint_native(ALICE, 10)

        with pytest.raises(InsufficientBalance):
            chain.transfer_native(ALICE, BOB, 11)
        assert chain.native_balance_of(ALICE) == 10

    def test_negative_amounts(self):
        chain = Chain()
        with pytest.raises(ValueError):
            chain.mint_native(ALICE, -1)
        with pytest.raises(ValueError):
            chain.transfer_native(ALICE, BOB, -1)


class TestEvents:
    def test_events_of_filters_by_type_and_emitter(self, chain, token):
        other = deploy_token(chain, DEPLOYER, "Other", "OTH", initial_supply=5)
        token.transfer(ALICE, 1, sender=DEPLOYER)

        assert len(chain.events_of(Transfer)) == 3
        assert [e.value for e in chain.events_of(Transfer, token.address)] == [1_000, 1]
        assert [e.value for e in chain.events_of(Transfer, other.address)] == [5]

    def test_events_since(self, chain, token):
        mark = len(chain.events)
        token.transfer(ALICE, 3, sender=DEPLOYER)

        (event,) = chain.events_since(mark)
        assert (event.to, event.value) == (ALICE, 3)
        assert chain.events_since(len(chain.events)) == []
        with pytest.raises(ValueError):
            chain.events_since(-1)

    def test_prune_events(self, chain, token):
        token.transfer(ALICE, 3, sender=DEPLOYER)

        assert chain.prune_events() == 2
        assert chain.events == []
        token.transfer(ALICE, 1, sender=DEPLOYER)
        assert len(chain.events) == 1

    def test_prune_refused_inside_atomic_block(self, chain, token):
        with chain.atomic():
            with pytest.raises(RuntimeError, match="atomic"):
                chain.prune_events()
        assert len(chain.events) == 1


class TestAtomic:
    """All-or-nothing execution of a block of calls."""

    def test_commits_without_error(self, chain, token):
        with chain.atomic():
            token.transfer(ALICE, 10, sender=DEPLOYER)

        assert token.balance_of(ALICE) == 10

    def test_rolls_back_everything(self, chain, token):
        events_before = len(chain.events)
        native_before = chain.native_balance_of(ALICE)

        with pytest.raises(RuntimeError, match="boom"):
            with chain.atomic():
                token.transfer(ALICE, 10, sender=DEPLOYER)
                token.mint(BOB, 7)
                chain.transfer_native(ALICE, BOB, 1)
                chain.advance_time(50)
                raise RuntimeError("boom")

        assert token.balance_of(ALICE) == 0
        assert token.balance_of(BOB) == 0
        assert token.total_supply == 1_000
        assert chain.native_balance_of(ALICE) == native_before
        assert chain.timestamp == 1_000
        assert len(chain.events) == events_before

    def test_rolls_back_deployments_and_nonces(self, chain):
        with pytest.raises(ValueError, match="abort"):
            with chain.atomic():
                deployed = deploy_token(chain, ALICE, "Temp", "TMP")
                raise ValueError("abort")

        assert not chain.is_deployed(deployed.address)
        # the nonce was restored, so the same address is handed out again
        assert chain.next_address(ALICE) == deployed.address

    def test_nested_inner_failure_keeps_outer_effects(self, chain, token):
        with chain.atomic():
            token.transfer(ALICE, 10, sender=DEPLOYER)
            with pytest.raises(InsufficientBalance):
                with chain.atomic():
                    token.transfer(BOB, 5, sender=ALICE)
                    token.transfer(BOB, 50, sender=ALICE)

        assert token.balance_of(ALICE) == 10
        assert token.balance_of(BOB) == 0

    def test_outer_failure_discards_committed_inner(self, chain, token):
        with pytest.raises(RuntimeError):
            with chain.atomic():
                with chain.atomic():
                    token.transfer(ALICE, 10, sender=DEPLOYER)
                raise RuntimeError("outer")

        assert token.balance_of(ALICE) == 0

    def test_repeated_writes_restore_the_original(self, chain, token):
        with pytest.raises(RuntimeError):
            with chain.atomic():
                for _ in range(3):
                    token.transfer(ALICE, 10, sender=DEPLOYER)
                    token.transfer(DEPLOYER, 5, sender=ALICE)
                token.approve(BOB, 7, sender=ALICE)
                raise RuntimeError("undo")

        assert token.balance_of(DEPLOYER) == 1_000
        assert token.balance_of(ALICE) == 0
        assert token.allowance(ALICE, BOB) == 0

    def test_rollback_cost_follows_writes_not_ledger_size(self, chain, token):
        """Holders the block never touches add nothing to its undo work."""
        for i in range(1, 501):
            token.mint(f"0x{i:040x}", 1)

        with structlog.testing.capture_logs() as logs:
            with pytest.raises(RuntimeError):
                with chain.atomic():
                    token.transfer(ALICE, 10, sender=DEPLOYER)
                    raise RuntimeError("undo")

        (rollback,) = [entry for entry in logs if entry["event"] == "atomic_rollback"]
        # one debit, one credit
        assert rollback["writes_undone"] == 2
        assert token.balance_of(f"0x{1:040x}") == 1

    def test_committed_inner_writes_join_the_outer_block(self, chain, token):
        with structlog.testing.capture_logs() as logs:
            with pytest.raises(RuntimeError):
                with chain.atomic():
                    with chain.atomic():
                        token.transfer(ALICE, 10, sender=DEPLOYER)
                    chain.advance_time(5)
                    raise RuntimeError("outer")

        (rollback,) = [entry for entry in logs if entry["event"] == "atomic_rollback"]
        assert rollback["writes_undone"] == 3
        assert token.balance_of(ALICE) == 0
        assert chain.timestamp == 1_000
