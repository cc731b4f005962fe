"""Tests for the fungible token ledger."""

import pytest

from cpamm.constants import ZERO_ADDRESS
from cpamm.errors import InsufficientAllowance, InsufficientBalance
from cpamm.models.events import Approval, Transfer
from cpamm.safe_int import UINT256_MAX, Underflow
from cpamm.tokens.erc20 import deploy_token
from tests.helpers import ALICE, BOB, CAROL, DEPLOYER, make_fee_token, make_token


@pytest.fixture
def token(chain):
    return make_token(chain, "TKN", holders=(ALICE,), amount=1_000)


class TestDeploy:
    def test_initial_supply_goes_to_deployer(self, chain):
        token = deploy_token(chain, DEPLOYER, "Token", "TKN", initial_supply=500, decimals=6)

        assert token.balance_of(DEPLOYER) == 500
        assert token.total_supply == 500
        assert token.decimals == 6
        assert chain.contract(token.address) is token

    def test_mint_is_transfer_from_zero(self, chain, token):
        token.mint(BOB, 25)

        event = chain.events_of(Transfer, token.address)[-1]
        assert (event.sender, event.to, event.value) == (ZERO_ADDRESS, BOB, 25)
        assert token.total_supply == 1_025


class TestTransfer:
    def test_moves_balance(self, chain, token):
        assert token.transfer(BOB, 300, sender=ALICE) is True

        assert token.balance_of(ALICE) == 700
        assert token.balance_of(BOB) == 300
        event = chain.events_of(Transfer, token.address)[-1]
        assert (event.sender, event.to, event.value) == (ALICE, BOB, 300)

    def test_insufficient_balance(self, token):
        with pytest.raises(InsufficientBalance, match="TKN"):
            token.transfer(BOB, 1_001, sender=ALICE)
        assert token.balance_of(ALICE) == 1_000

    def test_zero_transfer(self, token):
        token.transfer(BOB, 0, sender=ALICE)
        assert token.balance_of(BOB) == 0

    def test_malformed_recipient(self, token):
        with pytest.raises(ValueError, match="Invalid address"):
            token.transfer("0xabc", 1, sender=ALICE)

    def test_balance_lookup_normalizes_case(self, token):
        assert token.balance_of(ALICE.upper().replace("0X", "0x")) == 1_000


class TestAllowance:
    """Delegated transfers."""

    def test_approve(self, chain, token):
        token.approve(BOB, 100, sender=ALICE)

        assert token.allowance(ALICE, BOB) == 100
        event = chain.events_of(Approval, token.address)[-1]
        assert (event.owner, event.spender, event.value) == (ALICE, BOB, 100)

    def test_approve_negative(self, token):
        with pytest.raises(Underflow):
            token.approve(BOB, -1, sender=ALICE)

    def test_transfer_from_spends_allowance(self, token):
        token.approve(BOB, 100, sender=ALICE)

        token.transfer_from(ALICE, CAROL, 60, sender=BOB)

        assert token.allowance(ALICE, BOB) == 40
        assert token.balance_of(CAROL) == 60

    def test_transfer_from_above_allowance(self, token):
        token.approve(BOB, 100, sender=ALICE)

        with pytest.raises(InsufficientAllowance):
            token.transfer_from(ALICE, CAROL, 101, sender=BOB)
        assert token.balance_of(ALICE) == 1_000

    def test_unlimited_allowance_is_not_spent(self, token):
        token.approve(BOB, UINT256_MAX, sender=ALICE)

        token.transfer_from(ALICE, CAROL, 500, sender=BOB)

        assert token.allowance(ALICE, BOB) == UINT256_MAX

    def test_no_allowance(self, token):
        with pytest.raises(InsufficientAllowance):
            token.transfer_from(ALICE, BOB, 1, sender=BOB)


class TestFeeOnTransferToken:
    """Tokens that burn a share of each transfer."""

    def test_transfer_burns_fee(self, chain):
        token = make_fee_token(chain, fee_bps=100, holders=(ALICE,), amount=10_000)

        token.transfer(BOB, 10_000, sender=ALICE)

        assert token.balance_of(BOB) == 9_900
        assert token.total_supply == 9_900

    def test_transfer_from_burns_fee(self, chain):
        token = make_fee_token(chain, fee_bps=250, holders=(ALICE,), amount=10_000)
        token.approve(BOB, 4_000, sender=ALICE)

        token.transfer_from(ALICE, CAROL, 4_000, sender=BOB)

        assert token.balance_of(CAROL) == 3_900
        assert token.allowance(ALICE, BOB) == 0

    def test_tiny_transfer_rounds_fee_down(self, chain):
        token = make_fee_token(chain, fee_bps=100, holders=(ALICE,), amount=10_000)

        token.transfer(BOB, 99, sender=ALICE)

        assert token.balance_of(BOB) == 99

    def test_mint_is_untaxed(self, chain):
        token = make_fee_token(chain, holders=(ALICE,), amount=10_000)
        assert token.balance_of(ALICE) == 10_000

    @pytest.mark.parametrize("fee_bps", [-1, 10_000])
    def test_fee_bounds(self, chain, fee_bps):
        with pytest.raises(ValueError, match="fee_bps"):
            make_fee_token(chain, fee_bps=fee_bps)
