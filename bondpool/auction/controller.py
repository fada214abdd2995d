"""
Auction Controller  (Dutch auctions of bond positions)

Sellers escrow a product of bond positions and name a price window. The price
falls linearly from the maximum at `starting_time` towards the minimum over
`duration`; the first bidder pays the current price and receives the product.

    price(t) = max - (max - min) * t // duration,   0 <= t < duration

The owner can cancel any auction that has not been bid on, including one that
has run past its duration; the product then returns to the owner.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ..assets.fungible import AssetRegistry
from ..assets.positions import PositionRegistry, PositionTransfer
from ..atomic import atomic
from ..clock import Clock, SystemClock
from ..exceptions import (
    AuctionExpiredError,
    AuctionNotStartedError,
    AuctionStateError,
    BondPoolException,
    InvalidAuctionDurationError,
    InvalidAuctionPriceError,
    NotAuctionOwnerError,
    NotExecutableError,
    SelfBidError,
)
from ..logger import get_logger
from .store import AuctionStore
from .types import (
    Auction,
    AuctionCancelled,
    AuctionCompleted,
    AuctionEvent,
    AuctionStarted,
    AuctionState,
    BidSubmitted,
)

logger = get_logger(__name__)


def linear_price(max_amount: int, min_amount: int, elapsed: int, duration: int) -> int:
    """Price after `elapsed` seconds of a `duration`-second decay."""
    return max_amount - (max_amount - min_amount) * elapsed // duration


class AuctionController:
    """
    Creates, prices, settles and cancels auctions.

    Usage:

        controller = AuctionController(store, assets, positions, clock,
                                       custody_address="custody",
                                       executable_address="admin")
        auction = controller.create_auction("seller", 0, 3600, "DBIT", 100, 1000, product)
        controller.bid("buyer", auction.id)
    """

    def __init__(
        self,
        store: AuctionStore,
        assets: AssetRegistry,
        positions: PositionRegistry,
        clock: Optional[Clock] = None,
        *,
        custody_address: str,
        executable_address: str,
    ):
        self.store = store
        self.assets = assets
        self.positions = positions
        self.clock = clock or SystemClock()
        self.custody_address = custody_address
        self.executable_address = executable_address
        self._events: List[AuctionEvent] = []

    @classmethod
    def from_config(
        cls,
        config: Any,
        assets: AssetRegistry,
        positions: PositionRegistry,
        clock: Optional[Clock] = None,
    ) -> "AuctionController":
        """Build from a BondPoolConfig."""
        store = AuctionStore(
            min_auction_duration=config.auction.min_auction_duration,
            max_auction_duration=config.auction.max_auction_duration,
        )
        return cls(
            store,
            assets,
            positions,
            clock,
            custody_address=config.auction.custody_address,
            executable_address=config.pool.executable_address,
        )

    @property
    def events(self) -> List[AuctionEvent]:
        return list(self._events)

    @property
    def min_auction_duration(self) -> int:
        return self.store.min_auction_duration

    @property
    def max_auction_duration(self) -> int:
        return self.store.max_auction_duration

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        try:
            with atomic(self.store, self.assets, self.positions, self):
                yield
        except BondPoolException as e:
            logger.warning("%s failed: %s", name, e)
            raise

    # -- Create -------------------------------------------------------------

    def create_auction(
        self,
        owner: str,
        starting_time: int,
        duration: int,
        currency: str,
        min_currency_amount: int,
        max_currency_amount: int,
        product: Sequence[PositionTransfer],
    ) -> Auction:
        """
        Escrow `product` from `owner` and open an auction for it.

        Raises:
            InvalidAuctionDurationError: duration outside [min, max)
            InvalidAuctionPriceError:    not 0 < min < max
            InvalidProductError:         empty product or unknown position contract
            UnknownAssetError:           currency not registered
            TransferDeclinedError:       owner cannot deliver the product
        """
        with self._operation("create_auction"):
            if not (self.store.min_auction_duration <= duration < self.store.max_auction_duration):
                raise InvalidAuctionDurationError(
                    f"Duration {duration}s outside [{self.store.min_auction_duration}, "
                    f"{self.store.max_auction_duration})"
                )
            if not (0 < min_currency_amount < max_currency_amount):
                raise InvalidAuctionPriceError(
                    f"Price window must satisfy 0 < min < max, got "
                    f"min={min_currency_amount} max={max_currency_amount}"
                )
            self.assets.get_or_raise(currency)
            product = tuple(product)
            self.positions.validate_product(product)

            self.positions.transfer_product(owner, self.custody_address, product)
            auction = self.store.add(
                owner=owner,
                starting_time=starting_time,
                duration=duration,
                currency=currency,
                min_currency_amount=min_currency_amount,
                max_currency_amount=max_currency_amount,
                product=product,
            )
            self._events.append(AuctionStarted(auction.id, owner, self.clock.now()))

        logger.info(
            "Auction #%d started by %s: %d item(s), price %d → %d %s over %ds",
            auction.id, owner, len(product), max_currency_amount,
            min_currency_amount, currency, duration,
        )
        return replace(auction)

    # -- Price --------------------------------------------------------------

    def current_price(self, auction_id: int) -> int:
        auction = self.store.get_or_raise(auction_id)
        return self._price_at(auction, self.clock.now())

    def _price_at(self, auction: Auction, now: int) -> int:
        elapsed = now - auction.starting_time
        if elapsed < 0:
            raise AuctionNotStartedError(
                f"Auction #{auction.id} starts at {auction.starting_time}, now is {now}"
            )
        if elapsed >= auction.duration:
            raise AuctionExpiredError(f"Auction #{auction.id} expired at {auction.expires_at}")
        return linear_price(
            auction.max_currency_amount,
            auction.min_currency_amount,
            elapsed,
            auction.duration,
        )

    # -- Bid ----------------------------------------------------------------

    def bid(self, bidder: str, auction_id: int) -> Auction:
        """
        Buy the product at the current price. The first valid bid wins.

        Raises:
            AuctionNotFoundError:    unknown id
            SelfBidError:            bidder owns the auction
            AuctionExpiredError:     past starting_time + duration
            AuctionStateError:       already completed or cancelled
            AuctionNotStartedError:  before starting_time
            TransferDeclinedError:   bidder cannot pay
        """
        with self._operation("bid"):
            auction = self.store.get_or_raise(auction_id)
            now = self.clock.now()
            if bidder == auction.owner:
                raise SelfBidError(f"Owner {bidder} cannot bid on auction #{auction_id}")
            if now > auction.expires_at:
                raise AuctionExpiredError(f"Auction #{auction_id} expired at {auction.expires_at}")
            if auction.state != AuctionState.STARTED:
                raise AuctionStateError(f"Auction #{auction_id} is {auction.state.name}")

            price = self._price_at(auction, now)
            auction.complete(bidder, now, price)
            self.assets.transfer(auction.currency, bidder, auction.owner, price)
            self.positions.transfer_product(self.custody_address, bidder, auction.product)

            self._events.append(BidSubmitted(auction_id, bidder, now, price=price))
            self._events.append(AuctionCompleted(auction_id, bidder, now, final_price=price))

        logger.info("Auction #%d COMPLETED: %s paid amount=%d %s",
                    auction_id, bidder, price, auction.currency)
        return replace(auction)

    # -- Cancel -------------------------------------------------------------

    def cancel_auction(self, caller: str, auction_id: int) -> Auction:
        """Owner only. Returns the escrowed product to the owner."""
        with self._operation("cancel_auction"):
            auction = self.store.get_or_raise(auction_id)
            if caller != auction.owner:
                raise NotAuctionOwnerError(f"{caller} does not own auction #{auction_id}")
            if auction.state != AuctionState.STARTED:
                raise AuctionStateError(f"Auction #{auction_id} is {auction.state.name}")

            now = self.clock.now()
            auction.cancel(now)
            self.positions.transfer_product(self.custody_address, auction.owner, auction.product)
            self._events.append(AuctionCancelled(auction_id, caller, now))

        logger.info("Auction #%d CANCELLED by %s", auction_id, caller)
        return replace(auction)

    # -- Queries ------------------------------------------------------------

    def get_auction(self, auction_id: int) -> Auction:
        """Copy of the stored record; changes to it do not reach the store."""
        return replace(self.store.get_or_raise(auction_id))

    def get_auction_ids(self) -> List[int]:
        return self.store.get_ids()

    # -- Configuration (executable) -----------------------------------------

    def _require_executable(self, caller: str) -> None:
        if caller != self.executable_address:
            raise NotExecutableError(f"{caller} is not the executable")

    def set_min_auction_duration(self, caller: str, seconds: int) -> None:
        self._require_executable(caller)
        if not (0 < seconds < self.store.max_auction_duration):
            raise InvalidAuctionDurationError(
                f"Minimum duration must be in (0, {self.store.max_auction_duration}), got {seconds}"
            )
        self.store.min_auction_duration = seconds
        logger.info("Minimum auction duration set to %ds", seconds)

    def set_max_auction_duration(self, caller: str, seconds: int) -> None:
        self._require_executable(caller)
        if seconds <= self.store.min_auction_duration:
            raise InvalidAuctionDurationError(
                f"Maximum duration must exceed {self.store.min_auction_duration}, got {seconds}"
            )
        self.store.max_auction_duration = seconds
        logger.info("Maximum auction duration set to %ds", seconds)

    # -- Snapshot -----------------------------------------------------------

    def take_snapshot(self) -> int:
        return len(self._events)

    def restore_snapshot(self, event_count: int) -> None:
        del self._events[event_count:]

    def get_stats(self) -> Dict[str, Any]:
        auctions = [self.store.get_or_raise(i) for i in self.store.get_ids()]
        return {
            "auctions": len(auctions),
            "started": sum(1 for a in auctions if a.state == AuctionState.STARTED),
            "completed": sum(1 for a in auctions if a.state == AuctionState.COMPLETED),
            "cancelled": sum(1 for a in auctions if a.state == AuctionState.CANCELLED),
            "min_auction_duration": self.store.min_auction_duration,
            "max_auction_duration": self.store.max_auction_duration,
        }
