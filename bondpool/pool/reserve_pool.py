"""
Reserve Pool  (public entry points of the pooled-reserve engine)

Owns the ReserveLedger and the SwapEngine and is the only way callers reach
them. Responsibilities:
  - Caller authorization (bank, staking, executable identities)
  - All-or-nothing execution: every mutating call runs under `atomic`, so a
    failure restores the ledger and the in-memory token balances
  - Read-only reserve and path quotes

The caller identity is always an explicit argument; nothing is inferred.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Sequence, Tuple

from ..assets.fungible import AssetRegistry
from ..atomic import atomic
from ..exceptions import (
    BondPoolException,
    ConfigurationError,
    InsufficientLiquidityError,
    InvalidAmountError,
    NotBankError,
    NotExecutableError,
    NotStakingOrBankError,
)
from .ledger import ReserveLedger
from .quote import get_amounts_out
from .swap import SwapEngine, SwapResult

logger = logging.getLogger(__name__)


class ReservePool:
    """
    Pooled-reserve exchange.

    Usage:

        pool = ReservePool(assets, pool_address="pool", bank_address="bank",
                           executable_address="admin")
        pool.update_when_add_liquidity("bank", 1000, 2000, "USDC", "DBIT")
        pool.swap(0, 100, "USDC", "DBIT", to="alice")
    """

    def __init__(
        self,
        assets: AssetRegistry,
        *,
        pool_address: str,
        bank_address: str,
        executable_address: str,
        staking_address: str = "",
    ):
        self.ledger = ReserveLedger(assets, pool_address)
        self.engine = SwapEngine(self.ledger)
        self.bank_address = bank_address
        self.staking_address = staking_address
        self.executable_address = executable_address

    @classmethod
    def from_config(cls, config: Any, assets: AssetRegistry) -> "ReservePool":
        """Build from a BondPoolConfig."""
        return cls(
            assets,
            pool_address=config.pool.pool_address,
            bank_address=config.pool.bank_address,
            executable_address=config.pool.executable_address,
            staking_address=config.pool.staking_address,
        )

    @property
    def assets(self) -> AssetRegistry:
        return self.ledger.assets

    @property
    def pool_address(self) -> str:
        return self.ledger.pool_address

    # -- Authorization ------------------------------------------------------

    def _require_bank(self, caller: str) -> None:
        if caller != self.bank_address:
            raise NotBankError(f"{caller} is not the bank")

    def _require_bank_or_staking(self, caller: str) -> None:
        if caller != self.bank_address and not (self.staking_address and caller == self.staking_address):
            raise NotStakingOrBankError(f"{caller} is neither the bank nor staking")

    def _require_executable(self, caller: str) -> None:
        if caller != self.executable_address:
            raise NotExecutableError(f"{caller} is not the executable")

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        try:
            with atomic(self.ledger, self.ledger.assets, self.engine):
                yield
        except BondPoolException as e:
            logger.warning("%s failed: %s", name, e)
            raise

    # -- Read-only ----------------------------------------------------------

    def get_reserves(self, token_a: str, token_b: str) -> Tuple[int, int]:
        return self.ledger.get_reserves(token_a, token_b)

    def get_amounts_out(self, amount_in: int, path: Sequence[str]) -> List[int]:
        return get_amounts_out(self.ledger, amount_in, path)

    # -- Swap ---------------------------------------------------------------

    def swap(self, amount0_out: int, amount1_out: int, token0: str, token1: str, to: str) -> SwapResult:
        """Public, reentrancy-locked swap. See SwapEngine.swap."""
        with self._operation("swap"):
            return self.engine.swap(amount0_out, amount1_out, token0, token1, to)

    def sync(self, token: str) -> int:
        """Public: reconcile total_reserve[token] with the pool's balance."""
        with self._operation("sync"):
            return self.ledger.sync(token)

    # -- Liquidity (bank / staking) -----------------------------------------

    def update_when_add_liquidity(
        self,
        caller: str,
        amount_a: int,
        amount_b: int,
        token_a: str,
        token_b: str,
    ) -> Tuple[int, int]:
        """
        Book liquidity the bank already transferred into the pool.

        Returns the new (entries[a][b], entries[b][a]).
        """
        self._require_bank(caller)
        with self._operation("update_when_add_liquidity"):
            entries_a = self.ledger.add_liquidity_one_side(amount_a, token_a, token_b)
            entries_b = self.ledger.add_liquidity_one_side(amount_b, token_b, token_a)
        logger.info("Liquidity added %s/%s: amount=%d / amount=%d", token_a, token_b, amount_a, amount_b)
        return entries_a, entries_b

    def remove_liquidity(self, caller: str, to: str, token: str, amount: int) -> int:
        """
        Pay `amount` of `token` out of the shared reserve to `to`.

        Entries are untouched, so every pair holding `token` shrinks in
        proportion. The reserve may not be drained to zero while entries
        are outstanding. Returns the new total reserve.
        """
        self._require_bank_or_staking(caller)
        if amount <= 0:
            raise InvalidAmountError(f"Removal amount must be positive: {amount}")
        with self._operation("remove_liquidity"):
            total_reserve = self.ledger.total_reserve_of(token)
            if amount >= total_reserve:
                raise InsufficientLiquidityError(
                    f"Cannot remove {amount} {token}: total reserve is {total_reserve}"
                )
            self.assets.transfer(token, self.pool_address, to, amount)
            new_reserve = self.ledger.sync(token)
        logger.info("Liquidity removed: amount=%d %s → %s", amount, token, to)
        return new_reserve

    def remove_liquidity_inside_pool(
        self,
        caller: str,
        to: str,
        token_a: str,
        token_b: str,
        amount_a: int,
    ) -> int:
        """
        Pay `amount_a` of `token_a` to `to` out of the (token_a, token_b) allocation.

        Returns the new entries[token_a][token_b].
        """
        self._require_bank(caller)
        if amount_a <= 0:
            raise InvalidAmountError(f"Removal amount must be positive: {amount_a}")
        with self._operation("remove_liquidity_inside_pool"):
            self.assets.transfer(token_a, self.pool_address, to, amount_a)
            entries = self.ledger.remove_liquidity_one_side(amount_a, token_a, token_b)
        logger.info("Liquidity removed from %s/%s: amount=%d → %s", token_a, token_b, amount_a, to)
        return entries

    def update_when_remove_liquidity_one_token(
        self,
        caller: str,
        amount_a: int,
        token_a: str,
        token_b: str,
    ) -> int:
        """Book a one-sided removal whose tokens the bank already moved."""
        self._require_bank(caller)
        with self._operation("update_when_remove_liquidity_one_token"):
            return self.ledger.remove_liquidity_one_side(amount_a, token_a, token_b)

    # -- Configuration ------------------------------------------------------

    def update_bank_address(self, caller: str, new_bank: str) -> None:
        self._require_executable(caller)
        if not new_bank:
            raise ConfigurationError("Bank address cannot be empty")
        old, self.bank_address = self.bank_address, new_bank
        logger.info("Bank address updated: %s → %s", old, new_bank)

    # -- Diagnostics --------------------------------------------------------

    def check_consistency(self) -> None:
        self.ledger.check_consistency()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "pool": self.pool_address,
            "tokens": len(self.ledger.tokens()),
            "swaps": len(self.engine.events),
            "bank": self.bank_address,
            "staking": self.staking_address,
        }

    def to_dict(self) -> Dict[str, Any]:
        return self.ledger.to_dict()
