"""Protocol constants for the constant-product exchange engine.

Centralizes the null identifier, pool parameters and fee arithmetic.
"""

from cpamm.models.types import is_valid_address

# Null identifier: never a real asset, holds the permanently locked liquidity
ZERO_ADDRESS = "0x" + "00" * 20

# Claim tokens locked forever on the first deposit into a pool
MINIMUM_LIQUIDITY = 10**3

# Swap fee is 3/1000 (0.3%) of the input amount
FEE_NUMERATOR = 3
FEE_DENOMINATOR = 1000
# Input share that counts toward the invariant: 997 of every 1000 units
FEE_MULTIPLIER = FEE_DENOMINATOR - FEE_NUMERATOR

# Protocol captures 1/(PROTOCOL_FEE_DIVISOR + 1) of fee growth when enabled
PROTOCOL_FEE_DIVISOR = 5

# Logical timestamps and price accumulators are stored modulo these widths
TIMESTAMP_MODULUS = 2**32
ACCUMULATOR_MODULUS = 2**256

# Default account used by deployment helpers and the API's demo deployment
DEFAULT_DEPLOYER = "0x" + "de" * 20


def _validate_address(name: str, address: str) -> str:
    """Validate and return a well-known address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


_validate_address("ZERO_ADDRESS", ZERO_ADDRESS)
_validate_address("DEFAULT_DEPLOYER", DEFAULT_DEPLOYER)
