"""
bondpool Configuration

Loads config.toml; environment variables override TOML values.
"""

from .loader import (
    AuctionConfig,
    BondPoolConfig,
    LoggingConfig,
    PoolConfig,
    configure_logging,
    load_config,
)

__all__ = [
    "AuctionConfig",
    "BondPoolConfig",
    "LoggingConfig",
    "PoolConfig",
    "configure_logging",
    "load_config",
]
