"""Constant-product exchange engine - Python Implementation."""

__version__ = "0.1.0"

from cpamm.chain import Chain  # noqa: E402
from cpamm.deployment import Deployment, deploy  # noqa: E402

__all__ = ["Chain", "Deployment", "deploy", "__version__"]
