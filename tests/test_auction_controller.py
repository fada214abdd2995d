"""
Test suite for the bondpool Auction Engine

Covers:
  - Creation bounds and product escrow
  - Linear price decay
  - First-bidder settlement, payment and product release
  - Owner cancellation (including after expiry)
  - Lifecycle transitions and rollback on failure
  - Duration bound configuration
"""

import pytest

from bondpool.assets import (
    AssetRegistry,
    FungibleToken,
    PositionLedger,
    PositionRegistry,
    PositionTransfer,
)
from bondpool.auction import (
    AuctionCancelled,
    AuctionCompleted,
    AuctionController,
    AuctionStarted,
    AuctionState,
    AuctionStore,
    BidSubmitted,
    linear_price,
)
from bondpool.clock import ManualClock
from bondpool.config import BondPoolConfig
from bondpool.exceptions import (
    AuctionError,
    AuctionExpiredError,
    AuctionNotFoundError,
    AuctionNotStartedError,
    AuctionStateError,
    InsufficientBalanceError,
    InvalidAuctionDurationError,
    InvalidAuctionPriceError,
    InvalidProductError,
    NotAuctionOwnerError,
    NotExecutableError,
    SelfBidError,
    UnknownAssetError,
)

CUSTODY = "custody"
ADMIN = "admin"
SELLER = "bondpool_test_seller_001"
BUYER = "bondpool_test_buyer__002"
BROKE = "bondpool_test_broke__003"

PRODUCT = (
    PositionTransfer("DBIT-bonds", 0, 1, 60),
    PositionTransfer("DBIT-bonds", 1, 1, 40),
)


def _make_controller(start=0):
    clock = ManualClock(start)
    assets = AssetRegistry([FungibleToken("DBIT", balances={BUYER: 10_000, SELLER: 10})])
    bonds = PositionLedger("DBIT-bonds")
    bonds.issue(SELLER, 0, 1, 100)
    bonds.issue(SELLER, 1, 1, 100)
    positions = PositionRegistry([bonds])
    store = AuctionStore(min_auction_duration=100, max_auction_duration=100_000)
    controller = AuctionController(
        store, assets, positions, clock,
        custody_address=CUSTODY,
        executable_address=ADMIN,
    )
    return controller, clock, bonds


def _create(controller, starting_time=0, duration=1000, min_amount=100, max_amount=1000):
    return controller.create_auction(
        SELLER, starting_time, duration, "DBIT", min_amount, max_amount, PRODUCT,
    )


class TestCreateAuction:

    def test_create_escrows_product(self):
        controller, _, bonds = _make_controller()
        auction = _create(controller)
        assert auction.id == 1
        assert auction.state == AuctionState.STARTED
        assert bonds.balance_of(SELLER, 0, 1) == 40
        assert bonds.balance_of(CUSTODY, 0, 1) == 60
        assert bonds.balance_of(CUSTODY, 1, 1) == 40
        assert controller.get_auction_ids() == [1]

    def test_ids_are_monotonic(self):
        controller, _, _ = _make_controller()
        first = _create(controller)
        second = _create(controller)
        assert (first.id, second.id) == (1, 2)
        assert controller.get_auction_ids() == [1, 2]

    def test_emits_started(self):
        controller, _, _ = _make_controller(start=5)
        _create(controller)
        event = controller.events[-1]
        assert isinstance(event, AuctionStarted)
        assert event.to_dict() == {"event": "AuctionStarted", "auction_id": 1, "actor": SELLER, "timestamp": 5}

    @pytest.mark.parametrize("duration", [99, 100_000, 200_000])
    def test_duration_bounds(self, duration):
        controller, _, _ = _make_controller()
        with pytest.raises(InvalidAuctionDurationError, match="outside"):
            _create(controller, duration=duration)

    def test_minimum_duration_inclusive(self):
        controller, _, _ = _make_controller()
        assert _create(controller, duration=100).duration == 100

    @pytest.mark.parametrize("min_amount,max_amount", [(0, 1000), (1000, 1000), (1001, 1000)])
    def test_price_window(self, min_amount, max_amount):
        controller, _, _ = _make_controller()
        with pytest.raises(InvalidAuctionPriceError, match="0 < min < max"):
            _create(controller, min_amount=min_amount, max_amount=max_amount)

    def test_empty_product(self):
        controller, _, _ = _make_controller()
        with pytest.raises(InvalidProductError):
            controller.create_auction(SELLER, 0, 1000, "DBIT", 100, 1000, ())

    def test_unknown_currency(self):
        controller, _, _ = _make_controller()
        with pytest.raises(UnknownAssetError):
            controller.create_auction(SELLER, 0, 1000, "USDC", 100, 1000, PRODUCT)

    def test_owner_without_product_leaves_no_record(self):
        controller, _, bonds = _make_controller()
        with pytest.raises(InsufficientBalanceError):
            controller.create_auction(BUYER, 0, 1000, "DBIT", 100, 1000, PRODUCT)
        assert controller.get_auction_ids() == []
        assert controller.store.next_id == 1
        assert controller.events == []


class TestPricing:

    @pytest.mark.parametrize("elapsed,price", [(0, 1000), (500, 550), (999, 101)])
    def test_linear_decay(self, elapsed, price):
        controller, clock, _ = _make_controller()
        auction = _create(controller)
        clock.set(elapsed)
        assert controller.current_price(auction.id) == price

    def test_price_never_increases(self):
        controller, clock, _ = _make_controller()
        auction = _create(controller)
        prices = []
        for _ in range(10):
            prices.append(controller.current_price(auction.id))
            clock.advance(99)
        assert prices == sorted(prices, reverse=True)
        assert all(100 <= p <= 1000 for p in prices)

    def test_expired_at_duration(self):
        controller, clock, _ = _make_controller()
        auction = _create(controller)
        clock.set(1000)
        with pytest.raises(AuctionExpiredError, match="expired"):
            controller.current_price(auction.id)

    def test_not_started(self):
        controller, _, _ = _make_controller()
        auction = _create(controller, starting_time=50)
        with pytest.raises(AuctionNotStartedError, match="starts at 50"):
            controller.current_price(auction.id)

    def test_unknown_auction(self):
        controller, _, _ = _make_controller()
        with pytest.raises(AuctionNotFoundError):
            controller.current_price(42)

    def test_linear_price_helper(self):
        assert linear_price(1000, 100, 250, 1000) == 775


class TestBid:

    def test_first_bid_wins(self):
        controller, clock, bonds = _make_controller()
        auction = _create(controller)
        clock.set(500)
        settled = controller.bid(BUYER, auction.id)

        assert settled.state == AuctionState.COMPLETED
        assert settled.successful_bidder == BUYER
        assert settled.final_price == 550
        assert settled.ending_time == 500
        assert controller.assets.balance_of("DBIT", SELLER) == 560
        assert controller.assets.balance_of("DBIT", BUYER) == 9450
        assert bonds.balance_of(BUYER, 0, 1) == 60
        assert bonds.balance_of(BUYER, 1, 1) == 40
        assert bonds.balance_of(CUSTODY, 0, 1) == 0

    def test_emits_bid_and_completion(self):
        controller, clock, _ = _make_controller()
        auction = _create(controller)
        clock.set(10)
        controller.bid(BUYER, auction.id)
        bid, completed = controller.events[-2:]
        assert isinstance(bid, BidSubmitted) and bid.price == 991
        assert isinstance(completed, AuctionCompleted) and completed.final_price == 991

    def test_second_bid_rejected(self):
        controller, _, _ = _make_controller()
        auction = _create(controller)
        controller.bid(BUYER, auction.id)
        with pytest.raises(AuctionStateError, match="COMPLETED"):
            controller.bid(BROKE, auction.id)
        assert controller.get_auction(auction.id).successful_bidder == BUYER

    def test_self_bid(self):
        controller, _, _ = _make_controller()
        auction = _create(controller)
        with pytest.raises(SelfBidError):
            controller.bid(SELLER, auction.id)

    def test_bid_after_expiry(self):
        controller, clock, _ = _make_controller()
        auction = _create(controller)
        clock.set(1001)
        with pytest.raises(AuctionExpiredError):
            controller.bid(BUYER, auction.id)

    def test_bid_at_exact_expiry(self):
        controller, clock, bonds = _make_controller()
        auction = _create(controller)
        clock.set(1000)
        with pytest.raises(AuctionExpiredError, match="expired at 1000"):
            controller.bid(BUYER, auction.id)
        assert controller.get_auction(auction.id).state == AuctionState.STARTED
        assert bonds.balance_of(CUSTODY, 0, 1) == 60

    def test_bid_before_start(self):
        controller, _, _ = _make_controller()
        auction = _create(controller, starting_time=100)
        with pytest.raises(AuctionNotStartedError):
            controller.bid(BUYER, auction.id)

    def test_bid_on_missing_auction(self):
        controller, _, _ = _make_controller()
        with pytest.raises(AuctionNotFoundError, match="#7"):
            controller.bid(BUYER, 7)

    def test_unfunded_bid_rolls_back(self):
        controller, _, bonds = _make_controller()
        auction = _create(controller)
        with pytest.raises(InsufficientBalanceError):
            controller.bid(BROKE, auction.id)

        stored = controller.get_auction(auction.id)
        assert stored.state == AuctionState.STARTED
        assert stored.successful_bidder is None
        assert stored.final_price is None
        assert bonds.balance_of(CUSTODY, 0, 1) == 60
        assert len(controller.events) == 1

    def test_errors_share_base(self):
        for exc in (AuctionExpiredError, AuctionNotStartedError, AuctionStateError, SelfBidError):
            assert issubclass(exc, AuctionError)


class TestCancel:

    def test_owner_cancels(self):
        controller, clock, bonds = _make_controller()
        auction = _create(controller)
        clock.set(200)
        cancelled = controller.cancel_auction(SELLER, auction.id)
        assert cancelled.state == AuctionState.CANCELLED
        assert cancelled.ending_time == 200
        assert bonds.balance_of(SELLER, 0, 1) == 100
        assert bonds.balance_of(CUSTODY, 1, 1) == 0
        assert isinstance(controller.events[-1], AuctionCancelled)

    def test_only_owner(self):
        controller, _, _ = _make_controller()
        auction = _create(controller)
        with pytest.raises(NotAuctionOwnerError):
            controller.cancel_auction(BUYER, auction.id)

    def test_cancel_after_expiry_allowed(self):
        controller, clock, bonds = _make_controller()
        auction = _create(controller)
        clock.set(5000)
        controller.cancel_auction(SELLER, auction.id)
        assert bonds.balance_of(SELLER, 0, 1) == 100

    def test_cancel_is_terminal(self):
        controller, _, _ = _make_controller()
        auction = _create(controller)
        controller.cancel_auction(SELLER, auction.id)
        with pytest.raises(AuctionStateError, match="CANCELLED"):
            controller.cancel_auction(SELLER, auction.id)
        with pytest.raises(AuctionStateError):
            controller.bid(BUYER, auction.id)

    def test_cannot_cancel_completed(self):
        controller, _, _ = _make_controller()
        auction = _create(controller)
        controller.bid(BUYER, auction.id)
        with pytest.raises(AuctionStateError):
            controller.cancel_auction(SELLER, auction.id)
        assert controller.get_auction(auction.id).state == AuctionState.COMPLETED


class TestLifecycle:

    def test_direct_transition_guard(self):
        controller, _, _ = _make_controller()
        auction = _create(controller)
        auction.cancel(10)
        assert auction.is_terminal
        with pytest.raises(AuctionStateError, match="cannot move"):
            auction.complete(BUYER, 11, 500)
        assert auction.successful_bidder is None

    def test_to_dict(self):
        controller, _, _ = _make_controller()
        data = _create(controller).to_dict()
        assert data["state"] == "STARTED"
        assert data["product"][0]["amount"] == 60
        assert data["successfulBidder"] is None

    def test_returned_records_are_copies(self):
        controller, _, _ = _make_controller()
        auction = _create(controller)
        viewed = controller.get_auction(auction.id)
        viewed.state = AuctionState.COMPLETED
        viewed.final_price = 1
        auction.cancel(5)

        stored = controller.get_auction(auction.id)
        assert stored is not viewed
        assert stored.state == AuctionState.STARTED
        assert stored.final_price is None
        assert stored.ending_time is None
        controller.bid(BUYER, auction.id)
        assert controller.get_auction(auction.id).successful_bidder == BUYER


class TestAuctionStore:

    def test_lookup(self):
        store = AuctionStore()
        auction = store.add(SELLER, 0, 3600, "DBIT", 100, 1000, PRODUCT)
        assert store.get(auction.id) is auction
        assert store.get(99) is None
        with pytest.raises(AuctionNotFoundError, match="#99"):
            store.get_or_raise(99)

    def test_rollback_discards_uncommitted_auction(self):
        store = AuctionStore()
        store.add(SELLER, 0, 3600, "DBIT", 100, 1000, PRODUCT)
        snapshot = store.take_snapshot()
        store.add(SELLER, 0, 3600, "DBIT", 100, 1000, PRODUCT)
        assert store.next_id == 3
        store.restore_snapshot(snapshot)
        assert store.next_id == 2
        assert store.get(2) is None
        assert store.get_ids() == [1]


class TestDurationBounds:

    def test_executable_sets_bounds(self):
        controller, _, _ = _make_controller()
        controller.set_max_auction_duration(ADMIN, 5000)
        controller.set_min_auction_duration(ADMIN, 200)
        assert controller.min_auction_duration == 200
        assert controller.max_auction_duration == 5000
        with pytest.raises(InvalidAuctionDurationError):
            _create(controller, duration=150)

    def test_requires_executable(self):
        controller, _, _ = _make_controller()
        with pytest.raises(NotExecutableError):
            controller.set_min_auction_duration(SELLER, 200)
        with pytest.raises(NotExecutableError):
            controller.set_max_auction_duration(SELLER, 200)

    def test_min_must_stay_below_max(self):
        controller, _, _ = _make_controller()
        with pytest.raises(InvalidAuctionDurationError):
            controller.set_min_auction_duration(ADMIN, 100_000)
        with pytest.raises(InvalidAuctionDurationError):
            controller.set_max_auction_duration(ADMIN, 100)
        with pytest.raises(InvalidAuctionDurationError):
            controller.set_min_auction_duration(ADMIN, 0)

    def test_from_config(self):
        cfg = BondPoolConfig()
        cfg.pool.executable_address = ADMIN
        cfg.auction.min_auction_duration = 60
        cfg.auction.max_auction_duration = 600
        controller = AuctionController.from_config(cfg, AssetRegistry(), PositionRegistry(), ManualClock())
        assert controller.min_auction_duration == 60
        assert controller.custody_address == cfg.auction.custody_address
        assert controller.get_stats()["auctions"] == 0
