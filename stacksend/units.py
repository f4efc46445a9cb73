from __future__ import annotations
"""
Client-side unit helpers: STX <-> micro-STX, fee preview, address shape
checks, and sizing a contribution from an oracle quote.

Amounts on the ledger are always integers in micro-STX (1 STX = 1_000_000).
Human-facing values are parsed through `decimal.Decimal` so "0.1" means
exactly 100_000 micro-STX.

>>> format_stx(1_500_000)
'1.500000'
>>> parse_stx("2.5")
2500000
>>> convert_with_rate(1_000_000, 15_050_000_000)
150500000
"""


import re
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Union

from .escrow.fees import platform_fee

MICRO_PER_STX = 1_000_000
DEFAULT_FEE_BPS = 50
DEFAULT_RATE_DECIMALS = 8

_MAINNET_RE = re.compile(r"^SP[0-9A-Z]{38,41}$")
_TESTNET_RE = re.compile(r"^ST[0-9A-Z]{38,41}$")

Number = Union[int, str, Decimal, float]


def format_stx(micro: int) -> str:
    """Render micro-STX as an STX string with exactly 6 decimals."""
    if isinstance(micro, bool) or not isinstance(micro, int):
        raise TypeError(f"micro must be int, got {type(micro).__name__}")
    sign = "-" if micro < 0 else ""
    whole, frac = divmod(abs(micro), MICRO_PER_STX)
    return f"{sign}{whole}.{frac:06d}"


def parse_stx(value: Number) -> int:
    """Convert an STX amount to micro-STX, rounding down."""
    if isinstance(value, bool):
        raise TypeError("value must be a number, not bool")
    try:
        # str() first so floats parse by their shortest repr (0.1 -> "0.1")
        d = Decimal(str(value).strip().replace("_", ""))
    except InvalidOperation as e:
        raise ValueError(f"not an STX amount: {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"not an STX amount: {value!r}")
    if d < 0:
        raise ValueError(f"STX amount must be non-negative, got {value!r}")
    return int((d * MICRO_PER_STX).to_integral_value(rounding=ROUND_FLOOR))


def calculate_platform_fee(amount: int, fee_bps: int = DEFAULT_FEE_BPS) -> int:
    """Fee the escrow would take from a release of `amount` micro-STX."""
    return platform_fee(amount, fee_bps)


def is_valid_stacks_address(address: str) -> bool:
    """Shape check for mainnet (SP...) and testnet (ST...) principals. No checksum."""
    if not isinstance(address, str):
        return False
    return bool(_MAINNET_RE.match(address) or _TESTNET_RE.match(address))


def convert_with_rate(amount: int, rate: int, decimals: int = DEFAULT_RATE_DECIMALS) -> int:
    """Convert `amount` with a fixed-point quote, rounding down."""
    _check_conversion(amount, rate, decimals)
    return (amount * rate) // (10 ** decimals)


def required_source_amount(target: int, rate: int, decimals: int = DEFAULT_RATE_DECIMALS) -> int:
    """
    Smallest source amount whose conversion at `rate` reaches `target`.

    Rounds up, so `convert_with_rate(required_source_amount(t, r), r) >= t`.
    """
    _check_conversion(target, rate, decimals)
    if rate == 0:
        raise ValueError("rate must be positive")
    scale = 10 ** decimals
    return -((-target * scale) // rate)


def _check_conversion(amount: int, rate: int, decimals: int) -> None:
    for name, v in (("amount", amount), ("rate", rate), ("decimals", decimals)):
        if isinstance(v, bool) or not isinstance(v, int):
            raise TypeError(f"{name} must be int, got {type(v).__name__}")
        if v < 0:
            raise ValueError(f"{name} must be non-negative, got {v}")


__all__ = [
    "MICRO_PER_STX",
    "DEFAULT_FEE_BPS",
    "DEFAULT_RATE_DECIMALS",
    "format_stx",
    "parse_stx",
    "calculate_platform_fee",
    "is_valid_stacks_address",
    "convert_with_rate",
    "required_source_amount",
]
