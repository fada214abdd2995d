"""
Tokenized Position capability.

Bond positions are semi-fungible: a position contract holds balances per
(class, nonce) pair, where the class names the bond series and the nonce the
issuance. Auctions escrow a *product*, a list of `PositionTransfer`
instructions, and move it in one batch.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..exceptions import (
    InsufficientBalanceError,
    InvalidProductError,
    TransferDeclinedError,
    UnknownAssetError,
)
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PositionTransfer:
    """Move `amount` of bond (class_id, nonce_id) held on position contract `position_id`."""
    position_id: str
    class_id: int
    nonce_id: int
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "positionId": self.position_id,
            "classId": self.class_id,
            "nonceId": self.nonce_id,
            "amount": self.amount,
        }


@runtime_checkable
class TokenizedPosition(Protocol):
    """Position contract interface. `transfer_batch` raises TransferDeclinedError on failure."""

    position_id: str

    def balance_of(self, holder: str, class_id: int, nonce_id: int) -> int: ...

    def transfer_batch(self, sender: str, recipient: str, transfers: Sequence[PositionTransfer]) -> None: ...


class PositionLedger:
    """In-memory bond position contract."""

    def __init__(self, position_id: str):
        if not position_id:
            raise UnknownAssetError("Position id cannot be empty")
        self.position_id = position_id
        self._balances: Dict[Tuple[str, int, int], int] = {}

    def balance_of(self, holder: str, class_id: int, nonce_id: int) -> int:
        return self._balances.get((holder, class_id, nonce_id), 0)

    def issue(self, holder: str, class_id: int, nonce_id: int, amount: int) -> None:
        if amount <= 0:
            raise TransferDeclinedError(f"{self.position_id}: issue amount must be positive, got {amount}")
        key = (holder, class_id, nonce_id)
        self._balances[key] = self._balances.get(key, 0) + amount

    def transfer_batch(self, sender: str, recipient: str, transfers: Sequence[PositionTransfer]) -> None:
        if sender == recipient:
            raise TransferDeclinedError(f"{self.position_id}: cannot transfer to self ({sender})")

        # Validate the whole batch before moving anything
        needed: Dict[Tuple[int, int], int] = {}
        for t in transfers:
            if t.position_id != self.position_id:
                raise TransferDeclinedError(
                    f"{self.position_id}: instruction targets position {t.position_id}"
                )
            if t.amount <= 0:
                raise TransferDeclinedError(f"{self.position_id}: transfer amount must be positive")
            needed[(t.class_id, t.nonce_id)] = needed.get((t.class_id, t.nonce_id), 0) + t.amount

        for (class_id, nonce_id), amount in needed.items():
            bal = self.balance_of(sender, class_id, nonce_id)
            if bal < amount:
                raise InsufficientBalanceError(
                    f"{self.position_id}: {sender} holds {bal} of class {class_id} "
                    f"nonce {nonce_id}, needs {amount}"
                )

        for (class_id, nonce_id), amount in needed.items():
            self._balances[(sender, class_id, nonce_id)] -= amount
            key = (recipient, class_id, nonce_id)
            self._balances[key] = self._balances.get(key, 0) + amount

        logger.debug("Position transfer: %s → %s %d item(s) on %s",
                     sender, recipient, len(transfers), self.position_id)

    def take_snapshot(self) -> Dict[Tuple[str, int, int], int]:
        return dict(self._balances)

    def restore_snapshot(self, snapshot: Dict[Tuple[str, int, int], int]) -> None:
        self._balances = dict(snapshot)

    def __repr__(self) -> str:
        return f"<PositionLedger {self.position_id}>"


class PositionRegistry:
    """Routes product transfers to their position contracts."""

    def __init__(self, positions: Optional[List[TokenizedPosition]] = None):
        self._positions: Dict[str, TokenizedPosition] = {}
        for position in positions or []:
            self.register(position)

    def register(self, position: TokenizedPosition) -> TokenizedPosition:
        if position.position_id in self._positions:
            raise UnknownAssetError(f"Position {position.position_id} already registered")
        self._positions[position.position_id] = position
        logger.info("Position contract registered: %s", position.position_id)
        return position

    def get_or_raise(self, position_id: str) -> TokenizedPosition:
        position = self._positions.get(position_id)
        if position is None:
            raise UnknownAssetError(f"Position {position_id} not found in registry")
        return position

    def validate_product(self, product: Sequence[PositionTransfer]) -> None:
        if not product:
            raise InvalidProductError("Product must contain at least one position transfer")
        for item in product:
            if item.amount <= 0:
                raise InvalidProductError(f"Product amount must be positive, got {item.amount}")
            if item.position_id not in self._positions:
                raise InvalidProductError(f"Unknown position contract {item.position_id}")

    def transfer_product(self, sender: str, recipient: str, product: Sequence[PositionTransfer]) -> None:
        """Move every item of `product`, one batch per position contract."""
        grouped: Dict[str, List[PositionTransfer]] = {}
        for item in product:
            grouped.setdefault(item.position_id, []).append(item)
        for position_id, items in grouped.items():
            self.get_or_raise(position_id).transfer_batch(sender, recipient, items)

    def take_snapshot(self) -> Dict[str, Any]:
        return {
            position_id: position.take_snapshot()
            for position_id, position in self._positions.items()
            if hasattr(position, "take_snapshot")
        }

    def restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        for position_id, position_snapshot in snapshot.items():
            self._positions[position_id].restore_snapshot(position_snapshot)
