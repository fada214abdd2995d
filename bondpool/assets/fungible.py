"""
Fungible Asset capability.

The reserve pool and the auction controller only ever need two things from
a token: the balance held by an address and a transfer that either happens
completely or is declined. `FungibleAsset` is that interface.

`FungibleToken` is an in-memory implementation with mint / burn, an event
log, snapshot support for atomic rollback, and an optional transfer hook
that runs after balances move (the way callback tokens call back into the
receiving contract).
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from ..exceptions import (
    InsufficientBalanceError,
    TransferDeclinedError,
    UnknownAssetError,
)
from ..logger import get_logger

logger = get_logger(__name__)

TransferHook = Callable[[str, str, int], None]


@runtime_checkable
class FungibleAsset(Protocol):
    """Token custody interface. `transfer` raises TransferDeclinedError on failure."""

    token_id: str

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """Emitted on every balance movement (mint and burn use an empty side)."""
    token_id: str
    sender: str
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "token": self.token_id,
            "from": self.sender,
            "to": self.recipient,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  IN-MEMORY TOKEN
# ══════════════════════════════════════════════════════════════════════

class FungibleToken:
    """
    In-memory fungible token with integer balances.

    - balance_of(address) -> int
    - transfer(sender, recipient, amount)
    - mint(recipient, amount) / burn(holder, amount)
    """

    def __init__(
        self,
        token_id: str,
        *,
        balances: Optional[Dict[str, int]] = None,
        on_transfer: Optional[TransferHook] = None,
    ):
        if not token_id:
            raise UnknownAssetError("Token id cannot be empty")
        self.token_id = token_id
        self._balances: Dict[str, int] = {}
        self._total_supply = 0
        self._events: List[TransferEvent] = []
        self.on_transfer = on_transfer

        for holder, amount in (balances or {}).items():
            self.mint(holder, amount)

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    @property
    def events(self) -> List[TransferEvent]:
        return list(self._events)

    # ── Mutations ─────────────────────────────────────────────────────

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if amount <= 0:
            raise TransferDeclinedError(f"{self.token_id}: transfer amount must be positive, got {amount}")
        if sender == recipient:
            raise TransferDeclinedError(f"{self.token_id}: cannot transfer to self ({sender})")

        bal = self.balance_of(sender)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{self.token_id}: {sender} balance {bal} < transfer amount {amount}"
            )

        self._balances[sender] = bal - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        self._events.append(TransferEvent(self.token_id, sender, recipient, amount))
        logger.debug("Transfer: %s → %s amount=%d %s", sender, recipient, amount, self.token_id)

        if self.on_transfer is not None:
            self.on_transfer(sender, recipient, amount)

    def mint(self, recipient: str, amount: int) -> None:
        if amount <= 0:
            raise TransferDeclinedError(f"{self.token_id}: mint amount must be positive, got {amount}")
        self._balances[recipient] = self.balance_of(recipient) + amount
        self._total_supply += amount
        self._events.append(TransferEvent(self.token_id, "", recipient, amount))

    def burn(self, holder: str, amount: int) -> None:
        if amount <= 0:
            raise TransferDeclinedError(f"{self.token_id}: burn amount must be positive, got {amount}")
        bal = self.balance_of(holder)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{self.token_id}: {holder} balance {bal} < burn amount {amount}"
            )
        self._balances[holder] = bal - amount
        self._total_supply -= amount
        self._events.append(TransferEvent(self.token_id, holder, "", amount))

    # ── Snapshot ──────────────────────────────────────────────────────

    def take_snapshot(self) -> Dict[str, Any]:
        return {
            "balances": dict(self._balances),
            "total_supply": self._total_supply,
            "event_count": len(self._events),
        }

    def restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        self._balances = dict(snapshot["balances"])
        self._total_supply = snapshot["total_supply"]
        del self._events[snapshot["event_count"]:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token_id,
            "totalSupply": self._total_supply,
            "holders": len([b for b in self._balances.values() if b > 0]),
        }

    def __repr__(self) -> str:
        return f"<FungibleToken {self.token_id} supply={self._total_supply}>"


# ══════════════════════════════════════════════════════════════════════
#  REGISTRY
# ══════════════════════════════════════════════════════════════════════

class AssetRegistry:
    """
    Lookup of fungible assets by token id.

    Snapshots cover every registered asset that supports them.
    """

    def __init__(self, assets: Optional[List[FungibleAsset]] = None):
        self._assets: Dict[str, FungibleAsset] = {}
        for asset in assets or []:
            self.register(asset)

    def register(self, asset: FungibleAsset) -> FungibleAsset:
        if asset.token_id in self._assets:
            raise UnknownAssetError(f"Token {asset.token_id} already registered")
        self._assets[asset.token_id] = asset
        logger.info("Token registered: %s", asset.token_id)
        return asset

    def get(self, token_id: str) -> Optional[FungibleAsset]:
        return self._assets.get(token_id)

    def get_or_raise(self, token_id: str) -> FungibleAsset:
        asset = self.get(token_id)
        if asset is None:
            raise UnknownAssetError(f"Token {token_id} not found in registry")
        return asset

    def __contains__(self, token_id: str) -> bool:
        return token_id in self._assets

    def list_tokens(self) -> List[str]:
        return list(self._assets.keys())

    def balance_of(self, token_id: str, holder: str) -> int:
        return self.get_or_raise(token_id).balance_of(holder)

    def transfer(self, token_id: str, sender: str, recipient: str, amount: int) -> None:
        self.get_or_raise(token_id).transfer(sender, recipient, amount)

    def take_snapshot(self) -> Dict[str, Any]:
        return {
            token_id: asset.take_snapshot()
            for token_id, asset in self._assets.items()
            if hasattr(asset, "take_snapshot")
        }

    def restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        for token_id, asset_snapshot in snapshot.items():
            self._assets[token_id].restore_snapshot(asset_snapshot)

    def __repr__(self) -> str:
        return f"<AssetRegistry tokens={len(self._assets)}>"
