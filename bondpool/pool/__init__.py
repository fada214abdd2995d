"""
bondpool Pooled-Reserve Engine

Components:
  - Reserve Ledger (single-sided reserves, per-pair virtual entries)
  - Swap Engine (constant product, reentrancy guard)
  - Path quotes (read-only)
  - Reserve Pool (authorized, atomic public entry points)
"""

from .ledger import (
    ReserveLedger,
    SyncEvent,
)
from .swap import (
    ReentrancyGuard,
    SwapEngine,
    SwapEvent,
    SwapResult,
)
from .quote import (
    get_amounts_out,
    quote_out,
)
from .reserve_pool import (
    ReservePool,
)

__all__ = [
    # Ledger
    "ReserveLedger", "SyncEvent",
    # Swap
    "ReentrancyGuard", "SwapEngine", "SwapEvent", "SwapResult",
    # Quotes
    "get_amounts_out", "quote_out",
    # Facade
    "ReservePool",
]
