"""
Auction Store

Holds auction records keyed by id, the creation-order index and the global
duration bounds. Only the AuctionController mutates it.
"""

import copy
from typing import Any, Dict, List, Optional, Tuple

from ..assets.positions import PositionTransfer
from ..constants import (
    DEFAULT_MAX_AUCTION_DURATION,
    DEFAULT_MIN_AUCTION_DURATION,
    FIRST_AUCTION_ID,
)
from ..exceptions import AuctionNotFoundError
from ..logger import get_logger
from .types import Auction

logger = get_logger(__name__)


class AuctionStore:
    """In-memory auction records with monotonic ids."""

    def __init__(
        self,
        min_auction_duration: int = DEFAULT_MIN_AUCTION_DURATION,
        max_auction_duration: int = DEFAULT_MAX_AUCTION_DURATION,
    ):
        self.min_auction_duration = min_auction_duration
        self.max_auction_duration = max_auction_duration
        self._auctions: Dict[int, Auction] = {}
        self._ids: List[int] = []
        self._next_id = FIRST_AUCTION_ID

    @property
    def next_id(self) -> int:
        return self._next_id

    def add(
        self,
        owner: str,
        starting_time: int,
        duration: int,
        currency: str,
        min_currency_amount: int,
        max_currency_amount: int,
        product: Tuple[PositionTransfer, ...],
    ) -> Auction:
        """Store a new STARTED auction under the next id."""
        auction = Auction(
            id=self._next_id,
            owner=owner,
            starting_time=starting_time,
            duration=duration,
            currency=currency,
            min_currency_amount=min_currency_amount,
            max_currency_amount=max_currency_amount,
            product=product,
        )
        self._auctions[auction.id] = auction
        self._ids.append(auction.id)
        self._next_id += 1
        logger.debug("Stored auction #%d", auction.id)
        return auction

    def get(self, auction_id: int) -> Optional[Auction]:
        return self._auctions.get(auction_id)

    def get_or_raise(self, auction_id: int) -> Auction:
        auction = self.get(auction_id)
        if auction is None:
            raise AuctionNotFoundError(f"Auction #{auction_id} not found")
        return auction

    def get_ids(self) -> List[int]:
        return list(self._ids)

    # -- Snapshot -----------------------------------------------------------

    def take_snapshot(self) -> Dict[str, Any]:
        return {
            "auctions": {i: copy.copy(a) for i, a in self._auctions.items()},
            "ids": list(self._ids),
            "next_id": self._next_id,
            "bounds": (self.min_auction_duration, self.max_auction_duration),
        }

    def restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        # Restore in place: a record keeps its identity across a rollback
        # Restore records in place so references handed out stay valid
        saved = snapshot["auctions"]
        for auction_id in list(self._auctions):
            if auction_id not in saved:
                del self._auctions[auction_id]
        for auction_id, record in saved.items():
            if auction_id in self._auctions:
                vars(self._auctions[auction_id]).update(vars(record))
            else:
                self._auctions[auction_id] = copy.copy(record)
        self._ids = list(snapshot["ids"])
        self._next_id = snapshot["next_id"]
        self.min_auction_duration, self.max_auction_duration = snapshot["bounds"]

    def __repr__(self) -> str:
        return f"AuctionStore(auctions={len(self._ids)}, next_id={self._next_id})"
