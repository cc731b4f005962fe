"""Runtime configuration for the exchange engine and its HTTP API."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import structlog

_TRUTHY = ("true", "1", "yes")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once from the environment.

    Attributes:
        host: Interface the API binds to (CPAMM_HOST, default: 0.0.0.0)
        port: Port the API binds to (CPAMM_PORT, default: 8000)
        debug: Enable reload mode (CPAMM_DEBUG, default: false)
        log_level: Minimum structlog level (CPAMM_LOG_LEVEL, default: INFO)
        genesis_timestamp: Logical clock start for the default deployment
            (CPAMM_GENESIS_TIMESTAMP, default: 1)
        genesis_file: JSON file with the default deployment's initial tokens,
            balances and pools (CPAMM_GENESIS_FILE, default: none, which
            serves an empty exchange)
    """

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"
    genesis_timestamp: int = 1
    genesis_file: str | None = None


def load_settings() -> Settings:
    """Build Settings from CPAMM_* environment variables.

    Raises:
        ValueError: If a numeric variable is not an integer or the level is unknown
    """
    settings = Settings(
        host=os.environ.get("CPAMM_HOST", "0.0.0.0"),
        port=int(os.environ.get("CPAMM_PORT", "8000")),
        debug=os.environ.get("CPAMM_DEBUG", "false").lower() in _TRUTHY,
        log_level=os.environ.get("CPAMM_LOG_LEVEL", "INFO").upper(),
        genesis_timestamp=int(os.environ.get("CPAMM_GENESIS_TIMESTAMP", "1")),
        genesis_file=os.environ.get("CPAMM_GENESIS_FILE") or None,
    )
    level_number(settings.log_level)
    return settings


def level_number(level: str) -> int:
    """Map a level name such as "debug" to its numeric value."""
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level}")
    return number


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for console output at the given minimum level."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_number(level)),
    )


__all__ = ["Settings", "load_settings", "configure_logging", "level_number"]
