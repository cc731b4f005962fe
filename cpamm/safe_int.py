"""Range-checked unsigned integers for ledger arithmetic.

Reserves, balances and claim supply are uint256 quantities. Wrapping them in
SafeInt means an intermediate result that the ledger could not store raises
immediately instead of flowing into state:

    from cpamm.safe_int import S

    def liquidity_share(amount: int, supply: int, reserve: int) -> int:
        return (S(amount) * S(supply) // S(reserve)).value

Operands may mix SafeInt and plain int on either side of an operator.
"""

from __future__ import annotations

from functools import total_ordering

UINT256_MAX = 2**256 - 1
UINT112_MAX = 2**112 - 1


class SafeIntError(ArithmeticError):
    """Raised when an amount computation leaves the uint256 range."""


class DivisionByZero(SafeIntError):
    pass


class Underflow(SafeIntError):
    """A result, or a constructed value, is below zero."""


class Uint256Overflow(SafeIntError):
    """A result, or a constructed value, is above 2^256 - 1."""


def _as_int(operand: SafeInt | int) -> int:
    return operand._value if isinstance(operand, SafeInt) else operand


def _checked(result: int, expression: str) -> SafeInt:
    if result < 0:
        raise Underflow(f"{expression} is negative")
    if result > UINT256_MAX:
        raise Uint256Overflow(f"{expression} does not fit in uint256")
    return SafeInt(result)


def _divide(numerator: int, denominator: int) -> SafeInt:
    if denominator == 0:
        raise DivisionByZero(f"{numerator} // 0")
    return SafeInt(numerator // denominator)


@total_ordering
class SafeInt:
    """An integer in [0, 2^256 - 1] whose operators keep it there.

    Args:
        value: A plain int or another SafeInt. bool is refused even though
            it subclasses int.

    Raises:
        TypeError: For anything that is not an integer.
        Underflow: For negative values.
        Uint256Overflow: For values above 2^256 - 1.
    """

    __slots__ = ("_value",)

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            value = value._value
        elif isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"expected an integer amount, got {type(value).__name__}")
        elif value < 0:
            raise Underflow(f"{value} is negative")
        elif value > UINT256_MAX:
            raise Uint256Overflow(f"{value} does not fit in uint256")
        self._value = value

    @classmethod
    def zero(cls) -> SafeInt:
        return cls(0)

    @property
    def value(self) -> int:
        return self._value

    def __add__(self, other: SafeInt | int) -> SafeInt:
        rhs = _as_int(other)
        return _checked(self._value + rhs, f"{self._value} + {rhs}")

    __radd__ = __add__

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        rhs = _as_int(other)
        return _checked(self._value * rhs, f"{self._value} * {rhs}")

    __rmul__ = __mul__

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        rhs = _as_int(other)
        return _checked(self._value - rhs, f"{self._value} - {rhs}")

    def __rsub__(self, other: int) -> SafeInt:
        return _checked(other - self._value, f"{other} - {self._value}")

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        return _divide(self._value, _as_int(other))

    def __rfloordiv__(self, other: int) -> SafeInt:
        return _divide(other, self._value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (SafeInt, int)):
            return self._value == _as_int(other)
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _as_int(other)

    def __hash__(self) -> int:
        return hash(self._value)

    def __int__(self) -> int:
        return self._value

    __index__ = __int__

    def __bool__(self) -> bool:
        return self._value != 0

    def __repr__(self) -> str:
        return f"S({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def min(self, other: SafeInt | int) -> SafeInt:
        """The smaller of the two amounts, as a SafeInt."""
        return SafeInt(min(self._value, _as_int(other)))

    def fits_uint112(self) -> bool:
        """Whether the amount can be stored as a pool reserve."""
        return self._value <= UINT112_MAX


S = SafeInt
