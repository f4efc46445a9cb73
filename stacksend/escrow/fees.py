from __future__ import annotations
"""
Platform fee arithmetic for released remittances.

Deterministic, integer-only:

    fee = floor(total * fee_bps / 10_000)
    net = total - fee

`net` is always derived from `fee`, never rounded on its own, so
`net + fee == total` holds exactly.

Example
-------
>>> split_fee(1_000_000, 50)
(995000, 5000)
"""


from typing import Tuple

from ..config import BPS_DENOMINATOR

Amount = int


def platform_fee(total: Amount, fee_bps: int) -> Amount:
    if total < 0:
        raise ValueError(f"total must be non-negative, got {total}")
    if not (0 <= fee_bps <= BPS_DENOMINATOR):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOMINATOR}], got {fee_bps}")
    return (total * fee_bps) // BPS_DENOMINATOR


def split_fee(total: Amount, fee_bps: int) -> Tuple[Amount, Amount]:
    """Return (net, fee) for a release of `total` at `fee_bps`."""
    fee = platform_fee(total, fee_bps)
    return total - fee, fee


__all__ = ["platform_fee", "split_fee"]
