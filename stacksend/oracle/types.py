from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class ExchangeRate:
    """
    Latest quote for one currency pair.

    `rate` is a fixed-point integer scaled by 10**rate_decimals, so with the
    default 8 decimals 150.50 KES per USD is stored as 15_050_000_000.
    """

    pair: str
    rate: int
    updated_at: int
    updater: str

    def age(self, now: int) -> int:
        return now - self.updated_at

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ExchangeRate":
        return ExchangeRate(
            pair=str(d["pair"]),
            rate=int(d["rate"]),
            updated_at=int(d["updated_at"]),
            updater=str(d["updater"]),
        )


__all__ = ["ExchangeRate"]
