"""
Asset capabilities used by the pool and auction engines

Provides:
  - FungibleAsset / FungibleToken / AssetRegistry          (fungible.py)
  - TokenizedPosition / PositionLedger / PositionRegistry  (positions.py)
"""

from .fungible import (
    AssetRegistry,
    FungibleAsset,
    FungibleToken,
    TransferEvent,
)
from .positions import (
    PositionLedger,
    PositionRegistry,
    PositionTransfer,
    TokenizedPosition,
)

__all__ = [
    # Fungible
    "AssetRegistry",
    "FungibleAsset",
    "FungibleToken",
    "TransferEvent",
    # Positions
    "PositionLedger",
    "PositionRegistry",
    "PositionTransfer",
    "TokenizedPosition",
]
