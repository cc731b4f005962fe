"""Pytest configuration and fixtures."""

import pytest

from cpamm.chain import Chain
from cpamm.deployment import Deployment, deploy
from cpamm.pools.registry import PoolRegistry
from cpamm.routing.router import Router
from cpamm.tokens.erc20 import Token
from cpamm.tokens.wrapped import WrappedNative
from tests.helpers import (
    ALICE,
    BOB,
    CAROL,
    GENESIS_TIMESTAMP,
    INITIAL_NATIVE,
    approve_all,
    make_token,
)


@pytest.fixture
def chain() -> Chain:
    """Fresh chain with native balance for the test accounts."""
    chain = Chain(timestamp=GENESIS_TIMESTAMP)
    for account in (ALICE, BOB, CAROL):
        chain.mint_native(account, INITIAL_NATIVE)
    return chain


@pytest.fixture
def deployment(chain: Chain) -> Deployment:
    """Registry, wrapped native and router deployed on the chain."""
    return deploy(chain)


@pytest.fixture
def registry(deployment: Deployment) -> PoolRegistry:
    return deployment.registry


@pytest.fixture
def router(deployment: Deployment) -> Router:
    return deployment.router


@pytest.fixture
def wrapped(deployment: Deployment) -> WrappedNative:
    return deployment.wrapped_native


@pytest.fixture
def token_a(chain: Chain, deployment: Deployment) -> Token:
    return make_token(chain, "AAA")


@pytest.fixture
def token_b(chain: Chain, deployment: Deployment) -> Token:
    return make_token(chain, "BBB")


@pytest.fixture
def token_c(chain: Chain, deployment: Deployment) -> Token:
    return make_token(chain, "CCC")


@pytest.fixture
def approved(
    router: Router, wrapped: WrappedNative, token_a: Token, token_b: Token, token_c: Token
) -> None:
    """ALICE and BOB allow the router to spend all their tokens."""
    approve_all(router.address, [token_a, token_b, token_c, wrapped])
