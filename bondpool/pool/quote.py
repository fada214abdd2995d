"""
Read-only path quoting.

Each hop applies the fee-less constant-product quote

    amount_out = amount_in * reserve_out // (reserve_in + amount_in)

and feeds its output into the next hop. Nothing here mutates the ledger, and
a quote is only as fresh as the reserves it was computed from.
"""

from __future__ import annotations

from typing import List, Sequence

from ..exceptions import InsufficientInputError, InsufficientLiquidityError, InvalidPathError
from .ledger import ReserveLedger


def quote_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Single-hop output for `amount_in` against (reserve_in, reserve_out)."""
    if amount_in <= 0:
        raise InsufficientInputError(f"amount_in must be positive: {amount_in}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidityError(f"Empty reserve: ({reserve_in}, {reserve_out})")
    return amount_in * reserve_out // (reserve_in + amount_in)


def get_amounts_out(ledger: ReserveLedger, amount_in: int, path: Sequence[str]) -> List[int]:
    """
    Chain `quote_out` along `path`.

    Returns one amount per path element; amounts[0] is `amount_in`.
    """
    if len(path) < 2:
        raise InvalidPathError(f"Path needs at least 2 tokens, got {len(path)}")
    if amount_in <= 0:
        raise InsufficientInputError(f"amount_in must be positive: {amount_in}")

    amounts = [amount_in]
    for token_in, token_out in zip(path, path[1:]):
        reserve_in, reserve_out = ledger.get_reserves(token_in, token_out)
        amounts.append(quote_out(amounts[-1], reserve_in, reserve_out))
    return amounts
