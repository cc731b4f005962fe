"""Routing over constant-product pools.

Module structure:
- library.py: stateless path quoting (pool_for, get_amounts_out/in)
- router.py: Router, the deadline- and slippage-checked entry points
"""

from cpamm.routing.library import get_amounts_in, get_amounts_out, get_reserves, pool_for
from cpamm.routing.router import Router

__all__ = [
    "Router",
    "get_amounts_in",
    "get_amounts_out",
    "get_reserves",
    "pool_for",
]
