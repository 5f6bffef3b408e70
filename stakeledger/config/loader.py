"""
Stakeledger TOML Configuration Loader

Loads config.toml with environment variable overrides
(dataclass + from_dict + from_file).

Environment variable mapping:
    [logging] level            → STAKELEDGER_LOG_LEVEL
    [staking] admin            → STAKELEDGER_ADMIN
    [staking] engine_address   → STAKELEDGER_ENGINE_ADDRESS
    [staking] penalty_recipient→ STAKELEDGER_PENALTY_RECIPIENT
    [staking] exit_policy      → STAKELEDGER_EXIT_POLICY
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import DEFAULT_CONFIG_FILE, DEFAULT_ENGINE_ADDRESS
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_EXIT_POLICIES = ("penalty_decay", "locked")


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    file_enabled: bool = False
    file_path: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_enabled=data.get("file_enabled", False),
            file_path=data.get("file_path", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("STAKELEDGER_LOG_LEVEL"):
            self.level = v.upper()

    def validate(self) -> None:
        if self.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.level}")

    def apply(self) -> None:
        """Reconfigure the logging system with this section's settings."""
        from ..logger import configure_logging

        configure_logging(
            log_level=self.level,
            log_file=Path(self.file_path) if self.file_path else None,
            file_output=self.file_enabled,
        )


@dataclass
class StakingConfig:
    """[staking] section."""
    admin: str = ""
    engine_address: str = DEFAULT_ENGINE_ADDRESS
    penalty_recipient: str = ""      # empty → the administrator
    exit_policy: str = "penalty_decay"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StakingConfig":
        return cls(
            admin=data.get("admin", ""),
            engine_address=data.get("engine_address", DEFAULT_ENGINE_ADDRESS),
            penalty_recipient=data.get("penalty_recipient", ""),
            exit_policy=str(data.get("exit_policy", "penalty_decay")).lower(),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("STAKELEDGER_ADMIN"):
            self.admin = v
        if v := os.environ.get("STAKELEDGER_ENGINE_ADDRESS"):
            self.engine_address = v
        if v := os.environ.get("STAKELEDGER_PENALTY_RECIPIENT"):
            self.penalty_recipient = v
        if v := os.environ.get("STAKELEDGER_EXIT_POLICY"):
            self.exit_policy = v.lower()

    def validate(self) -> None:
        if not self.admin:
            raise ConfigurationError("staking.admin must be set")
        if not self.engine_address:
            raise ConfigurationError("staking.engine_address must be set")
        if self.engine_address == self.admin:
            raise ConfigurationError("staking.engine_address must differ from the admin")
        if self.exit_policy not in _EXIT_POLICIES:
            raise ConfigurationError(f"Invalid exit policy: {self.exit_policy}")


@dataclass
class LedgerConfig:
    """
    Unified configuration.

    Loads every section of config.toml and applies environment variable
    overrides.
    """
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    staking: StakingConfig = field(default_factory=StakingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerConfig":
        return cls(
            logging=LoggingConfig.from_dict(data.get("logging", {})),
            staking=StakingConfig.from_dict(data.get("staking", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "LedgerConfig":
        """
        Load configuration from a TOML file.

        A missing file yields defaults (plus env overrides); a malformed one
        raises ConfigurationError.
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Malformed config file {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.logging.apply_env()
        self.staking.apply_env()

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        self.logging.validate()
        self.staking.validate()
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "logging": {
                "level": self.logging.level,
                "file_enabled": self.logging.file_enabled,
                "file_path": self.logging.file_path,
            },
            "staking": {
                "admin": self.staking.admin,
                "engine_address": self.staking.engine_address,
                "penalty_recipient": self.staking.penalty_recipient,
                "exit_policy": self.staking.exit_policy,
            },
        }


def load_config(path: Optional[str] = None) -> LedgerConfig:
    """
    Load ledger configuration.

    Resolution order:
        1. Explicit *path* argument
        2. STAKELEDGER_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("STAKELEDGER_CONFIG", DEFAULT_CONFIG_FILE)

    return LedgerConfig.from_file(path)
