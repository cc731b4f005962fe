"""API endpoints for pool inspection and path quoting."""

from functools import lru_cache

import structlog
from fastapi import APIRouter, Depends, HTTPException

from cpamm.chain import Chain
from cpamm.config import load_settings
from cpamm.deployment import Deployment, deploy
from cpamm.genesis import apply_genesis, load_genesis
from cpamm.models.api import PoolAddress, PoolInfo, QuoteRequest, QuoteResponse
from cpamm.models.types import normalize_address
from cpamm.pools.addressing import compute_pool_address, sort_assets
from cpamm.pools.pool import ConstantProductPool
from cpamm.routing import library

logger = structlog.get_logger()

router = APIRouter()


@lru_cache(maxsize=1)
def get_default_deployment() -> Deployment:
    """Create the process-wide deployment on first use, seeded from CPAMM_GENESIS_FILE."""
    settings = load_settings()
    deployment = deploy(Chain(timestamp=settings.genesis_timestamp))
    if settings.genesis_file:
        apply_genesis(deployment, load_genesis(settings.genesis_file))
        # the API never reads the log
        deployment.chain.prune_events()
    logger.info("default_deployment_ready", pools=deployment.registry.pool_count())
    return deployment


def get_deployment() -> Deployment:
    """Dependency provider for the deployment the API reads from.

    Override this in tests to inject a prepared deployment:
        app.dependency_overrides[get_deployment] = lambda: deployment

    Returns:
        The deployment whose registry and pools the endpoints expose.
    """
    return get_default_deployment()


def _address(value: str) -> str:
    try:
        return normalize_address(value, validate=True)
    except ValueError as err:
        raise HTTPException(status_code=422, detail=str(err)) from err


def _pool_info(pool: ConstantProductPool) -> PoolInfo:
    reserve0, reserve1, block_timestamp_last = pool.get_reserves()
    return PoolInfo(
        address=pool.address,
        asset0=pool.asset0,
        asset1=pool.asset1,
        reserve0=reserve0,
        reserve1=reserve1,
        block_timestamp_last=block_timestamp_last,
        total_claim_supply=pool.total_claim_supply,
        price0_cumulative_last=pool.price0_cumulative_last,
        price1_cumulative_last=pool.price1_cumulative_last,
    )


@router.get("/pools")
async def list_pools(deployment: Deployment = Depends(get_deployment)) -> list[PoolInfo]:
    """All pools in creation order."""
    return [_pool_info(pool) for pool in deployment.registry.pools()]


@router.get("/pools/{asset_a}/{asset_b}")
async def get_pool(
    asset_a: str,
    asset_b: str,
    deployment: Deployment = Depends(get_deployment),
) -> PoolInfo:
    """Pool for a pair, in either order.

    Error Handling:
        - Malformed address: 422
        - Identical or zero assets: 422 with the engine error code
        - No pool for the pair: 404
    """
    asset0, asset1 = sort_assets(_address(asset_a), _address(asset_b))
    address = deployment.registry.get_pool(asset0, asset1)
    if address is None:
        raise HTTPException(status_code=404, detail=f"No pool for {asset0}/{asset1}")
    return _pool_info(deployment.registry.pool_at(address))


@router.get("/pools/{asset_a}/{asset_b}/address")
async def predict_pool_address(
    asset_a: str,
    asset_b: str,
    deployment: Deployment = Depends(get_deployment),
) -> PoolAddress:
    """Derive a pair's pool address from the registry address alone."""
    asset0, asset1 = sort_assets(_address(asset_a), _address(asset_b))
    address = compute_pool_address(deployment.registry.address, asset0, asset1)
    return PoolAddress(
        address=address,
        asset0=asset0,
        asset1=asset1,
        deployed=deployment.chain.is_deployed(address),
    )


@router.post("/quote/amounts-out")
async def quote_amounts_out(
    request: QuoteRequest,
    deployment: Deployment = Depends(get_deployment),
) -> QuoteResponse:
    """Chain exact-input quotes along a path."""
    amounts = library.get_amounts_out(deployment.registry, int(request.amount), request.path)
    logger.info(
        "quote_amounts_out",
        hops=len(request.path) - 1,
        amount_in=amounts[0],
        amount_out=amounts[-1],
    )
    return _quote_response(amounts)


@router.post("/quote/amounts-in")
async def quote_amounts_in(
    request: QuoteRequest,
    deployment: Deployment = Depends(get_deployment),
) -> QuoteResponse:
    """Chain exact-output quotes backward along a path."""
    amounts = library.get_amounts_in(deployment.registry, int(request.amount), request.path)
    logger.info(
        "quote_amounts_in",
        hops=len(request.path) - 1,
        amount_in=amounts[0],
        amount_out=amounts[-1],
    )
    return _quote_response(amounts)


def _quote_response(amounts: list[int]) -> QuoteResponse:
    return QuoteResponse(
        amounts=[str(a) for a in amounts],
        amount_in=amounts[0],
        amount_out=amounts[-1],
    )
