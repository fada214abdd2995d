"""
bondpool TOML Configuration Loader

Loads config.toml with environment variable overrides.
Each [section] maps to a dataclass with from_dict / apply_env.

Environment variable mapping:
    [logging] level               → BONDPOOL_LOG_LEVEL
    [pool] bank_address           → BONDPOOL_BANK_ADDRESS
    [pool] staking_address        → BONDPOOL_STAKING_ADDRESS
    [pool] executable_address     → BONDPOOL_EXECUTABLE_ADDRESS
    [auction] min_auction_duration → BONDPOOL_MIN_AUCTION_DURATION
    [auction] max_auction_duration → BONDPOOL_MAX_AUCTION_DURATION
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..constants import (
    BONDPOOL_CUSTODY_ADDRESS,
    BONDPOOL_POOL_ADDRESS,
    DEFAULT_MAX_AUCTION_DURATION,
    DEFAULT_MIN_AUCTION_DURATION,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False
    console_highlighting: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_output=data.get("file_output", False),
            console_highlighting=data.get("console_highlighting", True),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BONDPOOL_LOG_LEVEL"):
            self.level = v.upper()


@dataclass
class PoolConfig:
    """[pool] section: pool custody address and privileged callers."""
    pool_address: str = str(BONDPOOL_POOL_ADDRESS)
    bank_address: str = ""
    staking_address: str = ""
    executable_address: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoolConfig":
        return cls(
            pool_address=data.get("pool_address", str(BONDPOOL_POOL_ADDRESS)),
            bank_address=data.get("bank_address", ""),
            staking_address=data.get("staking_address", ""),
            executable_address=data.get("executable_address", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BONDPOOL_BANK_ADDRESS"):
            self.bank_address = v
        if v := os.environ.get("BONDPOOL_STAKING_ADDRESS"):
            self.staking_address = v
        if v := os.environ.get("BONDPOOL_EXECUTABLE_ADDRESS"):
            self.executable_address = v


@dataclass
class AuctionConfig:
    """[auction] section."""
    custody_address: str = str(BONDPOOL_CUSTODY_ADDRESS)
    min_auction_duration: int = DEFAULT_MIN_AUCTION_DURATION
    max_auction_duration: int = DEFAULT_MAX_AUCTION_DURATION

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuctionConfig":
        return cls(
            custody_address=data.get("custody_address", str(BONDPOOL_CUSTODY_ADDRESS)),
            min_auction_duration=int(data.get("min_auction_duration", DEFAULT_MIN_AUCTION_DURATION)),
            max_auction_duration=int(data.get("max_auction_duration", DEFAULT_MAX_AUCTION_DURATION)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BONDPOOL_MIN_AUCTION_DURATION"):
            self.min_auction_duration = int(v)
        if v := os.environ.get("BONDPOOL_MAX_AUCTION_DURATION"):
            self.max_auction_duration = int(v)


@dataclass
class BondPoolConfig:
    """
    Unified configuration.

    Loads every section of config.toml and applies environment variable
    overrides.
    """
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    pool: PoolConfig = field(default_factory=PoolConfig)
    auction: AuctionConfig = field(default_factory=AuctionConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BondPoolConfig":
        """Create BondPoolConfig from a parsed TOML dict."""
        return cls(
            logging=LoggingConfig.from_dict(data.get("logging", {})),
            pool=PoolConfig.from_dict(data.get("pool", {})),
            auction=AuctionConfig.from_dict(data.get("auction", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "BondPoolConfig":
        """
        Load configuration from a TOML file.

        A missing file yields the defaults (with env overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        self.logging.apply_env()
        self.pool.apply_env()
        self.auction.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Raises:
            ConfigurationError: on invalid config
        """
        if self.logging.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        if not self.pool.pool_address:
            raise ConfigurationError("pool_address is required")
        if not self.pool.bank_address:
            raise ConfigurationError("bank_address is required")
        if not self.pool.executable_address:
            raise ConfigurationError("executable_address is required")
        if not self.auction.custody_address:
            raise ConfigurationError("custody_address is required")
        if self.auction.min_auction_duration <= 0:
            raise ConfigurationError("min_auction_duration must be positive")
        if self.auction.min_auction_duration >= self.auction.max_auction_duration:
            raise ConfigurationError(
                f"min_auction_duration ({self.auction.min_auction_duration}) must be below "
                f"max_auction_duration ({self.auction.max_auction_duration})"
            )
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
                "console_highlighting": self.logging.console_highlighting,
            },
            "pool": {
                "pool_address": self.pool.pool_address,
                "bank_address": self.pool.bank_address,
                "staking_address": self.pool.staking_address,
                "executable_address": self.pool.executable_address,
            },
            "auction": {
                "custody_address": self.auction.custody_address,
                "min_auction_duration": self.auction.min_auction_duration,
                "max_auction_duration": self.auction.max_auction_duration,
            },
        }


def configure_logging(cfg: LoggingConfig) -> None:
    """Apply the [logging] section to the process-wide log setup."""
    from ..logger import reconfigure

    reconfigure(
        log_level=cfg.level,
        file_output=cfg.file_output,
        console_highlighting=cfg.console_highlighting,
    )


def load_config(path: Optional[str] = None) -> BondPoolConfig:
    """
    Load configuration.

    Resolution order:
        1. Explicit *path* argument
        2. BONDPOOL_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("BONDPOOL_CONFIG", "config.toml")

    return BondPoolConfig.from_file(path)
