"""
Auction records, lifecycle states and events.

An auction starts STARTED and moves exactly once, to COMPLETED (first valid
bid) or CANCELLED (owner). Both are terminal: once there, the state, bidder,
ending time and final price are frozen.
"""

from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, Dict, Optional, Set, Tuple

from ..assets.positions import PositionTransfer
from ..exceptions import AuctionStateError


# ══════════════════════════════════════════════════════════════════════
#  STATES
# ══════════════════════════════════════════════════════════════════════

class AuctionState(IntEnum):
    STARTED = 0
    COMPLETED = 1
    CANCELLED = 2


_VALID_TRANSITIONS: Dict[AuctionState, Set[AuctionState]] = {
    AuctionState.STARTED:   {AuctionState.COMPLETED, AuctionState.CANCELLED},
    # Terminal states
    AuctionState.COMPLETED: set(),
    AuctionState.CANCELLED: set(),
}


# ══════════════════════════════════════════════════════════════════════
#  AUCTION
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Auction:
    """
    Dutch auction of an escrowed bond product.

    Fields:
        id:                   Monotonic identifier, never reused
        owner:                Seller; receives the currency on completion
        starting_time:        Price decay starts here (seconds)
        duration:             Price is defined on [starting_time, starting_time + duration)
        currency:             Fungible token id the product is sold for
        min_currency_amount:  Price floor approached at expiry
        max_currency_amount:  Price at starting_time
        product:              Escrowed position transfers
        state:                Lifecycle stage
        successful_bidder:    Winner, once COMPLETED
        ending_time:          Bid or cancellation time
        final_price:          Price paid, once COMPLETED
    """
    id: int
    owner: str
    starting_time: int
    duration: int
    currency: str
    min_currency_amount: int
    max_currency_amount: int
    product: Tuple[PositionTransfer, ...]
    state: AuctionState = AuctionState.STARTED
    successful_bidder: Optional[str] = None
    ending_time: Optional[int] = None
    final_price: Optional[int] = None

    @property
    def expires_at(self) -> int:
        return self.starting_time + self.duration

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[self.state]

    def _transition(self, new_state: AuctionState) -> None:
        if new_state not in _VALID_TRANSITIONS[self.state]:
            raise AuctionStateError(
                f"Auction #{self.id}: cannot move from {self.state.name} to {new_state.name}"
            )
        self.state = new_state

    def complete(self, bidder: str, now: int, price: int) -> None:
        self._transition(AuctionState.COMPLETED)
        self.successful_bidder = bidder
        self.ending_time = now
        self.final_price = price

    def cancel(self, now: int) -> None:
        self._transition(AuctionState.CANCELLED)
        self.ending_time = now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "startingTime": self.starting_time,
            "duration": self.duration,
            "currency": self.currency,
            "minCurrencyAmount": self.min_currency_amount,
            "maxCurrencyAmount": self.max_currency_amount,
            "product": [item.to_dict() for item in self.product],
            "state": self.state.name,
            "successfulBidder": self.successful_bidder,
            "endingTime": self.ending_time,
            "finalPrice": self.final_price,
        }


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AuctionEvent:
    event: ClassVar[str] = "Auction"

    auction_id: int
    actor: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.event, **asdict(self)}


@dataclass(frozen=True)
class AuctionStarted(AuctionEvent):
    event: ClassVar[str] = "AuctionStarted"


@dataclass(frozen=True)
class AuctionCancelled(AuctionEvent):
    event: ClassVar[str] = "AuctionCancelled"


@dataclass(frozen=True)
class BidSubmitted(AuctionEvent):
    event: ClassVar[str] = "BidSubmitted"
    price: int = field(default=0)


@dataclass(frozen=True)
class AuctionCompleted(AuctionEvent):
    event: ClassVar[str] = "AuctionCompleted"
    final_price: int = field(default=0)
