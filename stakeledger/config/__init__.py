"""
Stakeledger Configuration

Loads config.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    LedgerConfig,
    LoggingConfig,
    StakingConfig,
    load_config,
)

__all__ = [
    "LedgerConfig",
    "LoggingConfig",
    "StakingConfig",
    "load_config",
]
