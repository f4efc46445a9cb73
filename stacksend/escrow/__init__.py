"""
stacksend.escrow - pooled remittance escrow.

Public surface:
- EscrowLedger:   create / contribute / release / cancel + admin controls
- EscrowStore:    in-memory record store (remittances, contributions, rosters)
- record types:   Remittance, Contribution, RemittanceStatus, receipts
- fee arithmetic: platform_fee, split_fee
"""

from .fees import platform_fee, split_fee
from .ledger import EscrowLedger
from .store import EscrowStore
from .types import (
    CancelReceipt,
    Contribution,
    ReleaseReceipt,
    Remittance,
    RemittanceStatus,
)

__all__ = [
    "EscrowLedger",
    "EscrowStore",
    "Remittance",
    "Contribution",
    "RemittanceStatus",
    "ReleaseReceipt",
    "CancelReceipt",
    "platform_fee",
    "split_fee",
]
