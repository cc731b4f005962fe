"""Annotated field types shared by the engine and the API models.

Amounts travel as decimal strings so that uint256 values survive JSON clients
that parse numbers as doubles. Addresses are kept in one canonical form,
lowercase with a 0x prefix, so they can be used directly as dict keys.
"""

from typing import Annotated, Any

from eth_utils import is_hex_address
from pydantic import BeforeValidator, Field

UINT256_MAX = 2**256 - 1


def validate_uint256(value: Any) -> str:
    """Coerce an int or a decimal string into a canonical uint256 string.

    Raises:
        ValueError: For booleans, non-numeric strings, and values outside
            [0, 2^256 - 1].
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"expected an integer or decimal string, got {type(value).__name__}")
    try:
        amount = int(value)
    except ValueError as err:
        raise ValueError(f"not a decimal integer: {value!r}") from err
    if not 0 <= amount <= UINT256_MAX:
        raise ValueError(f"{value} is outside the uint256 range")
    return str(amount)


def is_valid_address(address: str) -> bool:
    """True for a 0x-prefixed string of 40 hex digits, in any case."""
    return isinstance(address, str) and address[:2] in ("0x", "0X") and is_hex_address(address)


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Lowercase an address and make sure it carries the 0x prefix.

    With ``validate`` set, anything that is not 20 bytes of hex raises
    ValueError("Invalid address: ...") instead of being passed through.
    """
    canonical = address.lower()
    if not canonical.startswith("0x"):
        canonical = f"0x{canonical}"
    if validate and not is_valid_address(canonical):
        raise ValueError(f"Invalid address: {address}")
    return canonical


def address_bytes(address: str) -> bytes:
    return bytes.fromhex(normalize_address(address, validate=True)[2:])


def validate_address(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Invalid address: expected a string, got {type(value).__name__}")
    return normalize_address(value, validate=True)


Address = Annotated[str, BeforeValidator(validate_address)]

Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="Unsigned 256-bit integer encoded as a decimal string"),
]
