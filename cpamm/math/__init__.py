"""Mathematical utilities for the exchange engine.

This package provides integer primitives for pool accounting:
- sqrt, mul_div: checked integer helpers
- encode_uq112x112, uqdiv: fixed-point encoding for price accumulators
"""

from cpamm.math.fixed_point import Q112, encode_uq112x112, mul_div, sqrt, uqdiv

__all__ = ["Q112", "sqrt", "mul_div", "encode_uq112x112", "uqdiv"]
