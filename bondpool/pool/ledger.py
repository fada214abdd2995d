"""
Reserve Ledger  (single-sided reserves with virtual entries)

Each token keeps one real reserve, shared by every pair it belongs to. A
pair's share of that reserve is tracked in *entries* instead of a minted pool
token:

    reserve(A, B) = entries[A][B] * total_reserve[A] // total_entries[A]

with total_entries[A] == sum of entries[A][*]. Entries are directional:
entries[A][B] (A's allocation towards B) is independent of entries[B][A].

total_reserve is never incremented arithmetically. Every mutation ends with
`sync`, which reads the pool's actual token balance, so value transferred in
ahead of a call is absorbed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from ..assets.fungible import AssetRegistry
from ..exceptions import (
    InvalidAmountError,
    LedgerInconsistencyError,
    LiquidityUnderflowError,
    ZeroDenominatorError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncEvent:
    """Emitted whenever a token's total reserve is resynchronized."""
    token: str
    total_reserve: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "Sync", "token": self.token, "totalReserve": self.total_reserve,
                "timestamp": self.timestamp}


class ReserveLedger:
    """
    Per-token reserve and entries bookkeeping.

    Mutated only by the ReservePool facade and the SwapEngine.
    """

    def __init__(self, assets: AssetRegistry, pool_address: str):
        self.assets = assets
        self.pool_address = pool_address
        self._total_reserve: Dict[str, int] = {}
        self._total_entries: Dict[str, int] = {}
        self._entries: Dict[Tuple[str, str], int] = {}
        self._events: List[SyncEvent] = []

    # -- Views --------------------------------------------------------------

    def total_reserve_of(self, token: str) -> int:
        return self._total_reserve.get(token, 0)

    def total_entries_of(self, token: str) -> int:
        return self._total_entries.get(token, 0)

    def entries_of(self, token_a: str, token_b: str) -> int:
        return self._entries.get((token_a, token_b), 0)

    def partners_of(self, token: str) -> List[str]:
        """Tokens that hold an entries allocation of `token`."""
        return sorted(b for (a, b), e in self._entries.items() if a == token and e > 0)

    def tokens(self) -> List[str]:
        return sorted(set(self._total_reserve) | set(self._total_entries))

    @property
    def events(self) -> List[SyncEvent]:
        return list(self._events)

    def _pair_reserve(self, token_a: str, token_b: str) -> int:
        total_entries = self.total_entries_of(token_a)
        if total_entries == 0:
            return 0
        return self.entries_of(token_a, token_b) * self.total_reserve_of(token_a) // total_entries

    def get_reserves(self, token_a: str, token_b: str) -> Tuple[int, int]:
        """Reserves of the (token_a, token_b) pair, each side computed independently."""
        return self._pair_reserve(token_a, token_b), self._pair_reserve(token_b, token_a)

    # -- Mutations ----------------------------------------------------------

    def sync(self, token: str) -> int:
        """Set total_reserve[token] to the pool's actual balance of token."""
        balance = self.assets.balance_of(token, self.pool_address)
        self._total_reserve[token] = balance
        self._events.append(SyncEvent(token, balance))
        logger.debug("Sync %s: reserve=%d", token, balance)
        return balance

    def add_liquidity_one_side(self, amount: int, token_a: str, token_b: str) -> int:
        """
        Credit `amount` of token_a to the (token_a, token_b) allocation.

        Returns the new entries[token_a][token_b].
        """
        if amount < 0:
            raise InvalidAmountError(f"Liquidity amount cannot be negative: {amount}")

        total_reserve_a = self.total_reserve_of(token_a)
        if total_reserve_a == 0:
            # Bootstrap: first liquidity for this token sets the entries scale
            new_entries = amount
            self._entries[(token_a, token_b)] = new_entries
            self._total_entries[token_a] = new_entries
        else:
            total_entries_a = self.total_entries_of(token_a)
            old_entries = self.entries_of(token_a, token_b)
            new_entries = old_entries + amount * total_entries_a // total_reserve_a
            self._entries[(token_a, token_b)] = new_entries
            self._total_entries[token_a] = total_entries_a - old_entries + new_entries

        self.sync(token_a)
        return new_entries

    def remove_liquidity_one_side(self, amount: int, token_a: str, token_b: str) -> int:
        """
        Debit `amount` of token_a from the (token_a, token_b) allocation.

        Raises LiquidityUnderflowError when the pair's entries do not cover
        the amount. Returns the new entries[token_a][token_b].
        """
        if amount < 0:
            raise InvalidAmountError(f"Liquidity amount cannot be negative: {amount}")

        total_reserve_a = self.total_reserve_of(token_a)
        if total_reserve_a == 0:
            raise ZeroDenominatorError(f"Cannot remove {token_a} liquidity: total reserve is 0")

        total_entries_a = self.total_entries_of(token_a)
        old_entries = self.entries_of(token_a, token_b)
        new_entries = old_entries - amount * total_entries_a // total_reserve_a
        if new_entries < 0:
            raise LiquidityUnderflowError(
                f"Removing {amount} {token_a} exceeds the {token_a}/{token_b} allocation "
                f"(entries={old_entries})"
            )

        self._entries[(token_a, token_b)] = new_entries
        self._total_entries[token_a] = total_entries_a - old_entries + new_entries
        self.sync(token_a)
        return new_entries

    # -- Consistency --------------------------------------------------------

    def check_consistency(self) -> None:
        """Raise LedgerInconsistencyError unless every total matches its pair entries."""
        sums: Dict[str, int] = {}
        for (token_a, _), entries in self._entries.items():
            sums[token_a] = sums.get(token_a, 0) + entries
        for token in set(sums) | set(self._total_entries):
            if sums.get(token, 0) != self.total_entries_of(token):
                raise LedgerInconsistencyError(
                    f"{token}: total_entries={self.total_entries_of(token)} "
                    f"but pair entries sum to {sums.get(token, 0)}"
                )

    # -- Snapshot -----------------------------------------------------------

    def take_snapshot(self) -> Dict[str, Any]:
        return {
            "total_reserve": dict(self._total_reserve),
            "total_entries": dict(self._total_entries),
            "entries": dict(self._entries),
            "event_count": len(self._events),
        }

    def restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        self._total_reserve = dict(snapshot["total_reserve"])
        self._total_entries = dict(snapshot["total_entries"])
        self._entries = dict(snapshot["entries"])
        del self._events[snapshot["event_count"]:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool": self.pool_address,
            "tokens": {
                token: {
                    "totalReserve": self.total_reserve_of(token),
                    "totalEntries": self.total_entries_of(token),
                    "entries": {b: self.entries_of(token, b) for b in self.partners_of(token)},
                }
                for token in self.tokens()
            },
        }
