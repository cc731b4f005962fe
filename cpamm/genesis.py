"""Seeding a deployment from a genesis file.

The API serves whatever a deployment holds, so a served deployment needs an
initial state: native allocations, tokens with balances, funded pools and
the protocol-fee recipient. A genesis file describes that state as JSON (see
``cpamm.models.genesis``) and is applied in one atomic block.
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from cpamm.deployment import Deployment
from cpamm.models.genesis import Genesis, GenesisPool, GenesisToken
from cpamm.tokens.erc20 import FeeOnTransferToken, Token

logger = structlog.get_logger()


def load_genesis(path: str | Path) -> Genesis:
    """Load and validate a genesis file.

    Raises:
        OSError: If the file cannot be read
        pydantic.ValidationError: If the content does not describe a genesis
    """
    with open(path) as f:
        data = json.load(f)
    return Genesis.model_validate(data)


def apply_genesis(deployment: Deployment, genesis: Genesis) -> dict[str, Token]:
    """Create the genesis state on a deployment.

    Returns:
        Tokens by symbol, including the wrapped native token

    Raises:
        ValueError: If symbols repeat or a pool names an unknown symbol
    """
    wrapped = deployment.wrapped_native
    symbols = [wrapped.symbol] + [token.symbol for token in genesis.tokens]
    repeated = sorted({symbol for symbol in symbols if symbols.count(symbol) > 1})
    if repeated:
        raise ValueError(f"Duplicate token symbols in genesis: {', '.join(repeated)}")

    chain = deployment.chain
    tokens: dict[str, Token] = {wrapped.symbol: wrapped}
    with chain.atomic():
        for account, amount in genesis.native.items():
            chain.mint_native(account, int(amount))
        if genesis.fee_to is not None:
            registry = deployment.registry
            registry.set_fee_to(genesis.fee_to, sender=registry.fee_to_setter)
        for token_entry in genesis.tokens:
            tokens[token_entry.symbol] = _deploy_token(deployment, token_entry)
        for pool_entry in genesis.pools:
            _seed_pool(deployment, tokens, pool_entry)

    logger.info(
        "genesis_applied",
        native_accounts=len(genesis.native),
        tokens=len(genesis.tokens),
        pools=len(genesis.pools),
    )
    return tokens


def _deploy_token(deployment: Deployment, entry: GenesisToken) -> Token:
    chain = deployment.chain
    address = chain.next_address(deployment.deployer)
    name = entry.name or entry.symbol
    if entry.fee_bps:
        token: Token = FeeOnTransferToken(
            chain, address, name, entry.symbol, entry.decimals, fee_bps=entry.fee_bps
        )
    else:
        token = Token(chain, address, name, entry.symbol, entry.decimals)
    chain.deploy(token)
    for holder, amount in entry.balances.items():
        token.mint(holder, int(amount))
    return token


def _seed_pool(deployment: Deployment, tokens: dict[str, Token], entry: GenesisPool) -> None:
    unknown = [symbol for symbol in (entry.asset_a, entry.asset_b) if symbol not in tokens]
    if unknown:
        raise ValueError(f"Genesis pool names unknown token symbols: {', '.join(unknown)}")
    token_a, token_b = tokens[entry.asset_a], tokens[entry.asset_b]

    registry = deployment.registry
    address = registry.get_pool(token_a.address, token_b.address)
    if address is None:
        address = registry.create_pool(token_a.address, token_b.address)
    pool = registry.pool_at(address)

    _fund(deployment, token_a, pool.address, int(entry.amount_a))
    _fund(deployment, token_b, pool.address, int(entry.amount_b))
    provider = entry.provider or deployment.deployer
    liquidity = pool.mint(provider, sender=deployment.deployer)
    logger.debug("genesis_pool_seeded", pool=pool.address, provider=provider, liquidity=liquidity)


def _fund(deployment: Deployment, token: Token, pool_address: str, amount: int) -> None:
    """Put ``amount`` of a token into a pool without touching any holder's balance."""
    wrapped = deployment.wrapped_native
    if token is not wrapped:
        token.mint(pool_address, amount)
        return
    # wrapped supply must stay backed by native, so wrap fresh native instead
    deployer = deployment.deployer
    deployment.chain.mint_native(deployer, amount)
    wrapped.deposit(amount, sender=deployer)
    wrapped.transfer(pool_address, amount, sender=deployer)


__all__ = ["apply_genesis", "load_genesis"]
