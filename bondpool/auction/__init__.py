"""
bondpool Auction Engine

Components:
  - Auction records and lifecycle (STARTED → COMPLETED | CANCELLED)
  - Auction Store (ids, index, duration bounds)
  - Auction Controller (create, price, bid, cancel)
"""

from .types import (
    Auction,
    AuctionCancelled,
    AuctionCompleted,
    AuctionEvent,
    AuctionStarted,
    AuctionState,
    BidSubmitted,
)
from .store import AuctionStore
from .controller import (
    AuctionController,
    linear_price,
)

__all__ = [
    # Types
    "Auction", "AuctionState",
    # Events
    "AuctionEvent", "AuctionStarted", "AuctionCancelled", "AuctionCompleted", "BidSubmitted",
    # Store
    "AuctionStore",
    # Controller
    "AuctionController", "linear_price",
]
