"""Wiring of a complete exchange on a chain.

A deployment is one registry, one wrapped-native token and one router, all
owned by the caller. Nothing here is global.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from cpamm.chain import Chain
from cpamm.constants import DEFAULT_DEPLOYER
from cpamm.models.types import normalize_address
from cpamm.pools.registry import PoolRegistry
from cpamm.routing.router import Router
from cpamm.tokens.wrapped import WrappedNative

logger = structlog.get_logger()


@dataclass
class Deployment:
    """The contracts that make up one exchange."""

    chain: Chain
    registry: PoolRegistry
    wrapped_native: WrappedNative
    router: Router
    # account whose nonce derived the contract addresses
    deployer: str = DEFAULT_DEPLOYER


def deploy(
    chain: Chain | None = None,
    deployer: str = DEFAULT_DEPLOYER,
    fee_to_setter: str | None = None,
) -> Deployment:
    """Deploy registry, wrapped native and router.

    Args:
        chain: Chain to deploy on (a fresh one if None)
        deployer: Account whose nonce derives the contract addresses
        fee_to_setter: Fee authority (defaults to the deployer)

    Returns:
        The deployed contracts
    """
    chain = chain if chain is not None else Chain()
    deployer = normalize_address(deployer, validate=True)
    registry = chain.deploy(
        PoolRegistry(chain, chain.next_address(deployer), fee_to_setter or deployer)
    )
    wrapped_native = chain.deploy(WrappedNative(chain, chain.next_address(deployer)))
    router = chain.deploy(
        Router(chain, chain.next_address(deployer), registry, wrapped_native)
    )
    logger.info(
        "exchange_deployed",
        registry=registry.address,
        wrapped_native=wrapped_native.address,
        router=router.address,
    )
    return Deployment(
        chain=chain,
        registry=registry,
        wrapped_native=wrapped_native,
        router=router,
        deployer=deployer,
    )


__all__ = ["Deployment", "deploy"]
