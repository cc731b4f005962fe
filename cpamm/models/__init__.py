"""Pydantic models for events and the HTTP API."""

from cpamm.models.types import Address, Uint256

__all__ = [
    "Address",
    "Uint256",
]
