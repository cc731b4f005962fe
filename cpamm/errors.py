"""Exchange engine error classes.

Every failure is a terminal rejection of the whole attempted operation.
Each class carries a stable ``code`` used in logs and API responses.
"""

from typing import ClassVar


class AMMError(Exception):
    """Base error for exchange engine operations."""

    code: ClassVar[str] = "AMM_ERROR"


# --- Registry ---


class IdenticalAssets(AMMError):
    """Both sides of a pair are the same asset."""

    code = "IDENTICAL_ASSETS"


class ZeroAsset(AMMError):
    """One side of a pair is the null identifier."""

    code = "ZERO_ASSET"


class PoolExists(AMMError):
    """A pool for this unordered pair already exists."""

    code = "POOL_EXISTS"


class PoolNotFound(AMMError):
    """No pool is deployed for this pair."""

    code = "POOL_NOT_FOUND"


class Forbidden(AMMError):
    """Caller is not authorized for this operation."""

    code = "FORBIDDEN"


# --- Pool ---


class PoolNotInitialized(AMMError):
    """Pool has not received its asset pair yet."""

    code = "POOL_NOT_INITIALIZED"


class AlreadyInitialized(AMMError):
    """Pool asset pair can only be set once."""

    code = "ALREADY_INITIALIZED"


class Locked(AMMError):
    """Nested entry into a pool operation."""

    code = "LOCKED"


class Overflow(AMMError):
    """Reserve does not fit in 112 bits."""

    code = "OVERFLOW"


class InsufficientLiquidityMinted(AMMError):
    """Deposit would mint zero claim tokens."""

    code = "INSUFFICIENT_LIQUIDITY_MINTED"


class InsufficientLiquidityBurned(AMMError):
    """Redemption would return zero of an asset."""

    code = "INSUFFICIENT_LIQUIDITY_BURNED"


class InsufficientOutputAmount(AMMError):
    """Requested or resulting output is zero or below the caller's bound."""

    code = "INSUFFICIENT_OUTPUT_AMOUNT"


class InsufficientInputAmount(AMMError):
    """No input was supplied to a swap."""

    code = "INSUFFICIENT_INPUT_AMOUNT"


class InsufficientLiquidity(AMMError):
    """Reserves cannot cover the request."""

    code = "INSUFFICIENT_LIQUIDITY"


class InvalidTo(AMMError):
    """Swap recipient is one of the pool's own assets."""

    code = "INVALID_TO"


class MissingCallback(AMMError):
    """Swap carries callback data but no callback was supplied."""

    code = "MISSING_CALLBACK"


class InvariantViolated(AMMError):
    """Fee-adjusted constant product decreased across a swap."""

    code = "K"


# --- Router ---


class Expired(AMMError):
    """Deadline passed before execution."""

    code = "EXPIRED"


class InsufficientAmount(AMMError):
    """Quote requested for a zero amount."""

    code = "INSUFFICIENT_AMOUNT"


class InsufficientAAmount(AMMError):
    """Chosen amount of asset A is below the caller's minimum."""

    code = "INSUFFICIENT_A_AMOUNT"


class InsufficientBAmount(AMMError):
    """Chosen amount of asset B is below the caller's minimum."""

    code = "INSUFFICIENT_B_AMOUNT"


class ExcessiveInputAmount(AMMError):
    """Required input exceeds the caller's maximum."""

    code = "EXCESSIVE_INPUT_AMOUNT"


class InvalidPath(AMMError):
    """Swap path is too short or does not start/end with the wrapped native asset."""

    code = "INVALID_PATH"


# --- Ledgers ---


class InsufficientBalance(AMMError):
    """Holder balance too low for a transfer or burn."""

    code = "INSUFFICIENT_BALANCE"


class InsufficientAllowance(AMMError):
    """Spender allowance too low for a delegated transfer."""

    code = "INSUFFICIENT_ALLOWANCE"
