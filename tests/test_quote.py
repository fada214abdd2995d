"""
Test suite for read-only path quotes
"""

import pytest

from bondpool.assets import AssetRegistry, FungibleToken
from bondpool.exceptions import InsufficientInputError, InsufficientLiquidityError, InvalidPathError
from bondpool.pool import ReserveLedger, get_amounts_out, quote_out

POOL = "pool"
BANK = "bank"


def _make_ledger():
    assets = AssetRegistry([
        FungibleToken("USDC", balances={BANK: 100_000}),
        FungibleToken("DBIT", balances={BANK: 100_000}),
        FungibleToken("DBGT", balances={BANK: 100_000}),
    ])
    ledger = ReserveLedger(assets, POOL)
    for token_a, amount_a, token_b, amount_b in (
        ("USDC", 1000, "DBIT", 2000),
        ("DBIT", 4000, "DBGT", 1000),
    ):
        assets.transfer(token_a, BANK, POOL, amount_a)
        assets.transfer(token_b, BANK, POOL, amount_b)
        ledger.add_liquidity_one_side(amount_a, token_a, token_b)
        ledger.add_liquidity_one_side(amount_b, token_b, token_a)
    return ledger


class TestQuoteOut:

    def test_single_hop(self):
        assert quote_out(100, 1000, 2000) == 181

    def test_truncates(self):
        # 1 * 10 // 11
        assert quote_out(1, 10, 10) == 0

    def test_zero_input(self):
        with pytest.raises(InsufficientInputError, match="positive"):
            quote_out(0, 1000, 2000)

    def test_empty_reserve(self):
        with pytest.raises(InsufficientLiquidityError, match="Empty reserve"):
            quote_out(100, 0, 2000)


class TestGetAmountsOut:

    def test_single_hop_path(self):
        ledger = _make_ledger()
        assert get_amounts_out(ledger, 100, ["USDC", "DBIT"]) == [100, 181]

    def test_multi_hop_chains_outputs(self):
        ledger = _make_ledger()
        amounts = get_amounts_out(ledger, 100, ["USDC", "DBIT", "DBGT"])
        assert len(amounts) == 3
        assert amounts[0] == 100
        assert amounts[1] == 181
        reserve_in, reserve_out = ledger.get_reserves("DBIT", "DBGT")
        assert amounts[2] == quote_out(181, reserve_in, reserve_out)

    def test_does_not_mutate_ledger(self):
        ledger = _make_ledger()
        before = ledger.to_dict()
        get_amounts_out(ledger, 500, ["USDC", "DBIT", "DBGT"])
        assert ledger.to_dict() == before

    def test_short_path(self):
        ledger = _make_ledger()
        with pytest.raises(InvalidPathError, match="at least 2"):
            get_amounts_out(ledger, 100, ["USDC"])

    def test_zero_amount(self):
        ledger = _make_ledger()
        with pytest.raises(InsufficientInputError):
            get_amounts_out(ledger, 0, ["USDC", "DBIT"])

    def test_unseeded_pair(self):
        ledger = _make_ledger()
        with pytest.raises(InsufficientLiquidityError):
            get_amounts_out(ledger, 100, ["USDC", "DBGT"])
