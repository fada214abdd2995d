"""
Swap Engine  (constant product over single-sided reserves)

A swap pays out one side of a pair and infers what the caller paid in from
the pool's balances afterwards:

    current = old_reserve + balance_now - total_reserve_at_last_sync

The swap is accepted only if current0 * current1 >= old0 * old1. The realized
amounts are then booked against the ReserveLedger, so the input is credited to
the input token's allocation towards the output token and the output debited
from the output token's allocation towards the input token.

Security:
  - Single shared reentrancy guard, also covering swaps triggered from a
    token's transfer callback
  - Reserve exhaustion forbidden (output strictly below pair reserve)
  - Recipient may not be one of the swapped tokens
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from ..exceptions import (
    InsufficientInputError,
    InsufficientLiquidityError,
    InvalidAmountError,
    InvalidRecipientError,
    InvalidSwapRequestError,
    InvariantViolationError,
    ReentrancyError,
)
from .ledger import ReserveLedger

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reentrancy guard
# ---------------------------------------------------------------------------

class ReentrancyGuard:
    """Scoped lock: entering while held raises ReentrancyError."""

    def __init__(self) -> None:
        self._locked: bool = False

    @property
    def locked(self) -> bool:
        return self._locked

    def __enter__(self) -> "ReentrancyGuard":
        if self._locked:
            raise ReentrancyError("Reentrancy detected: pool is locked")
        self._locked = True
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._locked = False
        return False


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SwapEvent:
    """Emitted on every executed swap."""
    token0: str
    token1: str
    amount0_in: int
    amount1_in: int
    amount0_out: int
    amount1_out: int
    to: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Swap",
            "token0": self.token0,
            "token1": self.token1,
            "amount0In": self.amount0_in,
            "amount1In": self.amount1_in,
            "amount0Out": self.amount0_out,
            "amount1Out": self.amount1_out,
            "to": self.to,
            "timestamp": self.timestamp,
        }


@dataclass
class SwapResult:
    """Amounts realized by a swap and the pair reserves around it."""
    amount0_in: int
    amount1_in: int
    amount0_out: int
    amount1_out: int
    reserves_before: Tuple[int, int]
    reserves_after: Tuple[int, int]


# ---------------------------------------------------------------------------
# Swap Engine
# ---------------------------------------------------------------------------

class SwapEngine:
    """Executes swaps against a ReserveLedger under a shared reentrancy guard."""

    def __init__(self, ledger: ReserveLedger, guard: ReentrancyGuard | None = None):
        self.ledger = ledger
        self.guard = guard or ReentrancyGuard()
        self._events: List[SwapEvent] = []

    @property
    def events(self) -> List[SwapEvent]:
        return list(self._events)

    def swap(
        self,
        amount0_out: int,
        amount1_out: int,
        token0: str,
        token1: str,
        to: str,
    ) -> SwapResult:
        """
        Pay out exactly one side of (token0, token1) to `to`.

        The caller must have transferred the input to the pool beforehand.

        Raises:
            ReentrancyError, InvalidSwapRequestError, InvalidRecipientError,
            InsufficientLiquidityError, InvariantViolationError,
            InsufficientInputError
        """
        with self.guard:
            return self._execute_swap(amount0_out, amount1_out, token0, token1, to)

    def _execute_swap(
        self,
        amount0_out: int,
        amount1_out: int,
        token0: str,
        token1: str,
        to: str,
    ) -> SwapResult:
        """Core swap logic, called under the reentrancy guard."""
        if amount0_out < 0 or amount1_out < 0:
            raise InvalidAmountError(f"Output amounts cannot be negative: ({amount0_out}, {amount1_out})")
        if (amount0_out > 0) == (amount1_out > 0):
            raise InvalidSwapRequestError("Exactly one of amount0_out, amount1_out must be nonzero")
        if token0 == token1:
            raise InvalidSwapRequestError(f"Cannot swap {token0} for itself")
        if to in (token0, token1):
            raise InvalidRecipientError(f"Recipient {to} is one of the swapped tokens")

        ledger = self.ledger
        old0, old1 = ledger.get_reserves(token0, token1)
        if not (amount0_out < old0 and amount1_out < old1):
            raise InsufficientLiquidityError(
                f"Output ({amount0_out}, {amount1_out}) exceeds reserves ({old0}, {old1})"
            )

        # Pay out first; the input is read off the balances afterwards
        pool = ledger.pool_address
        if amount0_out > 0:
            ledger.assets.transfer(token0, pool, to, amount0_out)
        if amount1_out > 0:
            ledger.assets.transfer(token1, pool, to, amount1_out)

        current0 = old0 + ledger.assets.balance_of(token0, pool) - ledger.total_reserve_of(token0)
        current1 = old1 + ledger.assets.balance_of(token1, pool) - ledger.total_reserve_of(token1)

        if current0 * current1 < old0 * old1:
            raise InvariantViolationError(
                f"K decreased: {current0} * {current1} < {old0} * {old1}"
            )

        amount0_in = max(0, current0 - (old0 - amount0_out))
        amount1_in = max(0, current1 - (old1 - amount1_out))
        if amount0_in <= 0 and amount1_in <= 0:
            raise InsufficientInputError("No input amount detected")

        # Outputs are debited against the reserve synced before the payout
        if amount0_out > 0:
            ledger.remove_liquidity_one_side(amount0_out, token0, token1)
        if amount1_out > 0:
            ledger.remove_liquidity_one_side(amount1_out, token1, token0)
        if amount0_in > 0:
            ledger.add_liquidity_one_side(amount0_in, token0, token1)
        if amount1_in > 0:
            ledger.add_liquidity_one_side(amount1_in, token1, token0)
        ledger.sync(token0)
        ledger.sync(token1)

        reserves_after = ledger.get_reserves(token0, token1)
        self._events.append(SwapEvent(token0, token1, amount0_in, amount1_in, amount0_out, amount1_out, to))
        logger.info(
            "Swap %s/%s: in=(%d, %d) out=(%d, %d) → %s",
            token0, token1, amount0_in, amount1_in, amount0_out, amount1_out, to,
        )
        return SwapResult(
            amount0_in=amount0_in,
            amount1_in=amount1_in,
            amount0_out=amount0_out,
            amount1_out=amount1_out,
            reserves_before=(old0, old1),
            reserves_after=reserves_after,
        )

    # -- Snapshot -----------------------------------------------------------

    def take_snapshot(self) -> int:
        return len(self._events)

    def restore_snapshot(self, event_count: int) -> None:
        del self._events[event_count:]
