"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Accounts, amounts and times
- factories: Token and pool factory functions
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    CAROL,
    DEPLOYER,
    E18,
    FAR_DEADLINE,
    FEE_SINK,
    GENESIS_TIMESTAMP,
    INITIAL_BALANCE,
    INITIAL_NATIVE,
)
from tests.helpers.factories import (
    approve_all,
    make_fee_token,
    make_token,
    ordered,
    seed_pool,
)

__all__ = [
    # Constants
    "ALICE",
    "BOB",
    "CAROL",
    "DEPLOYER",
    "FEE_SINK",
    "E18",
    "FAR_DEADLINE",
    "GENESIS_TIMESTAMP",
    "INITIAL_BALANCE",
    "INITIAL_NATIVE",
    # Factories
    "make_token",
    "make_fee_token",
    "approve_all",
    "seed_pool",
    "ordered",
]
