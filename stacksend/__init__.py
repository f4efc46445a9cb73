from __future__ import annotations
"""
StackSend - pooled remittance escrow with an exchange-rate oracle.

Any number of contributors pool value toward a single recipient's target. The
escrow ledger holds the pooled funds until the recipient releases them (minus
a platform fee) or the creator cancels and every contributor is refunded. A
companion oracle keeps authenticated, time-bounded exchange-rate quotes that
clients read when sizing a contribution.

Public surface:
- errors, config, metrics, units
- host (treasury, clock, events)
- escrow (EscrowLedger), oracle (RateOracle)
- deployment (Deployment snapshot), cli
"""


from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    "config",
    "errors",
    "metrics",
    "units",
    "host",
    "escrow",
    "oracle",
    "deployment",
    "cli",
]
