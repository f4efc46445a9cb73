from __future__ import annotations

"""
Escrow record types: remittances, contributions and settlement receipts.

Records are immutable; the ledger replaces them wholesale on every state
change so a failed call can never leave a half-updated record behind.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

Amount = int
Timestamp = int


class RemittanceStatus(str, Enum):
    """
    Lifecycle: ACTIVE -> FUNDED -> COMPLETED, or ACTIVE|FUNDED -> CANCELLED.
    COMPLETED and CANCELLED are terminal.
    """

    ACTIVE = "active"
    FUNDED = "funded"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RemittanceStatus.COMPLETED, RemittanceStatus.CANCELLED)

    @property
    def is_cancellable(self) -> bool:
        return self in (RemittanceStatus.ACTIVE, RemittanceStatus.FUNDED)


@dataclass(frozen=True)
class Remittance:
    """One funding campaign toward `target_amount` for `recipient`."""

    id: int
    creator: str
    recipient: str
    target_amount: Amount
    total_raised: Amount
    deadline: Timestamp
    description: str
    currency_pair: str
    status: RemittanceStatus
    created_at: Timestamp
    released_at: Optional[Timestamp] = None

    @property
    def progress_bps(self) -> int:
        """Funding progress in basis points, capped at 10_000."""
        return min(10_000, (self.total_raised * 10_000) // self.target_amount)

    def accepts_contributions(self, now: Timestamp) -> bool:
        return self.status is RemittanceStatus.ACTIVE and now < self.deadline

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Remittance":
        released = d.get("released_at")
        return Remittance(
            id=int(d["id"]),
            creator=str(d["creator"]),
            recipient=str(d["recipient"]),
            target_amount=int(d["target_amount"]),
            total_raised=int(d["total_raised"]),
            deadline=int(d["deadline"]),
            description=str(d.get("description", "")),
            currency_pair=str(d.get("currency_pair", "")),
            status=RemittanceStatus(d["status"]),
            created_at=int(d["created_at"]),
            released_at=int(released) if released is not None else None,
        )


@dataclass(frozen=True)
class Contribution:
    """A contributor's accumulated stake in one remittance."""

    remittance_id: int
    contributor: str
    amount: Amount
    contributed_at: Timestamp

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Contribution":
        return Contribution(
            remittance_id=int(d["remittance_id"]),
            contributor=str(d["contributor"]),
            amount=int(d["amount"]),
            contributed_at=int(d["contributed_at"]),
        )


@dataclass(frozen=True)
class ReleaseReceipt:
    remittance_id: int
    recipient: str
    total: Amount
    net: Amount
    fee: Amount
    fee_bps: int
    released_at: Timestamp

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CancelReceipt:
    remittance_id: int
    refunds: Tuple[Tuple[str, Amount], ...] = field(default_factory=tuple)

    @property
    def total_refunded(self) -> Amount:
        return sum(amount for _, amount in self.refunds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "remittance_id": self.remittance_id,
            "refunds": [{"contributor": c, "amount": a} for c, a in self.refunds],
            "total_refunded": self.total_refunded,
        }


__all__ = [
    "Amount",
    "Timestamp",
    "RemittanceStatus",
    "Remittance",
    "Contribution",
    "ReleaseReceipt",
    "CancelReceipt",
]
