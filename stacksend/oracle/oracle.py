from __future__ import annotations
"""
Exchange-rate oracle: authenticated, time-bounded quotes per currency pair.

Writers are the owner plus an explicit allowlist of updaters. Each pair holds
only its latest quote; an update overwrites unconditionally (no history, no
monotonicity). Readers choose between the raw quote and a staleness-checked
read that rejects quotes older than `max_rate_age`.

Pausing blocks updates only; reads remain available while paused.
"""


import logging
import threading
from typing import Any, Dict, Optional

from .. import access, metrics
from ..config import OracleParams
from ..errors import (
    InvalidPair,
    InvalidRate,
    OracleOwnerOnly,
    OracleUnauthorized,
    RateNotFound,
    StackSendError,
    StalePrice,
)
from ..host import Host
from .types import ExchangeRate

log = logging.getLogger(__name__)


class RateOracle:
    component = "oracle"

    def __init__(self, owner: str, host: Host, params: Optional[OracleParams] = None) -> None:
        if not isinstance(owner, str) or not owner:
            raise ValueError("owner must be a non-empty identity")
        self.owner = owner
        self.host = host
        self.params = params or OracleParams()
        self.params.validate()
        self._rates: Dict[str, ExchangeRate] = {}
        self._updaters: Dict[str, bool] = {}
        self._active = True
        self._lock = threading.RLock()

    # ---- Writes -----------------------------------------------------------

    def update_exchange_rate(self, caller: str, pair: str, rate: int) -> ExchangeRate:
        with self._lock:
            try:
                access.require_identity(caller, OracleUnauthorized)
                if not self._active:
                    raise OracleUnauthorized("oracle is paused", details={"caller": caller})
                access.require_authorized_updater(caller, self.owner, self._updaters, OracleUnauthorized)
                if not isinstance(pair, str) or not pair or len(pair) > self.params.max_pair_len:
                    raise InvalidPair(
                        f"pair must be 1..{self.params.max_pair_len} characters",
                        details={"pair": pair if isinstance(pair, str) else repr(pair)},
                    )
                if (
                    isinstance(rate, bool)
                    or not isinstance(rate, int)
                    or not (self.params.min_rate <= rate <= self.params.max_rate)
                ):
                    raise InvalidRate(
                        f"rate must be within [{self.params.min_rate}, {self.params.max_rate}]",
                        details={"pair": pair, "rate": rate if isinstance(rate, int) else repr(rate)},
                    )
            except StackSendError as e:
                metrics.record_rejection(self.component, "update_exchange_rate", e.code)
                log.debug("oracle update rejected: %s", e)
                raise

            quote = ExchangeRate(pair=pair, rate=rate, updated_at=self.host.now(), updater=caller)
            self._rates[pair] = quote

        self.host.events.emit(
            "ExchangeRateUpdated",
            {"pair": pair, "rate": rate, "updated_at": quote.updated_at, "updater": caller},
        )
        metrics.record_rate_update(pair)
        log.info("rate %s = %d (by %s at %d)", pair, rate, caller, quote.updated_at)
        return quote

    def add_authorized_updater(self, caller: str, identity: str) -> None:
        self._set_updater(caller, identity, True)

    def remove_authorized_updater(self, caller: str, identity: str) -> None:
        """Revoke `identity`; the entry is kept with value False."""
        self._set_updater(caller, identity, False)

    def pause_oracle(self, caller: str) -> None:
        self._set_active(caller, False)

    def unpause_oracle(self, caller: str) -> None:
        self._set_active(caller, True)

    # ---- Reads ------------------------------------------------------------

    def get_exchange_rate(self, pair: str) -> ExchangeRate:
        if not isinstance(pair, str):
            raise InvalidPair("pair must be a string", details={"pair": repr(pair)})
        with self._lock:
            quote = self._rates.get(pair)
        if quote is None:
            raise RateNotFound(pair=pair)
        return quote

    def get_fresh_exchange_rate(self, pair: str) -> ExchangeRate:
        quote = self.get_exchange_rate(pair)
        now = self.host.now()
        if quote.age(now) > self.params.max_rate_age:
            metrics.record_stale_read(pair)
            raise StalePrice(
                pair=pair, updated_at=quote.updated_at, now=now, max_age=self.params.max_rate_age
            )
        return quote

    def is_active(self) -> bool:
        return self._active

    def is_authorized(self, identity: str) -> bool:
        with self._lock:
            return access.is_authorized_updater(identity, self.owner, self._updaters)

    def get_rate_decimals(self) -> int:
        return self.params.rate_decimals

    def get_max_rate_age(self) -> int:
        return self.params.max_rate_age

    def get_contract_owner(self) -> str:
        return self.owner

    def pairs(self) -> Dict[str, ExchangeRate]:
        with self._lock:
            return dict(self._rates)

    # ---- Internals --------------------------------------------------------

    def _set_updater(self, caller: str, identity: str, allowed: bool) -> None:
        operation = "add_authorized_updater" if allowed else "remove_authorized_updater"
        with self._lock:
            try:
                access.require_identity(caller, OracleOwnerOnly)
                access.require_owner(caller, self.owner, OracleOwnerOnly)
                if not isinstance(identity, str) or not identity:
                    raise OracleUnauthorized("updater identity must be non-empty")
            except StackSendError as e:
                metrics.record_rejection(self.component, operation, e.code)
                raise
            self._updaters[identity] = allowed
        self.host.events.emit("UpdaterChanged", {"updater": identity, "allowed": allowed})
        log.info("updater %s %s by %s", identity, "authorized" if allowed else "revoked", caller)

    def _set_active(self, caller: str, active: bool) -> None:
        # Idempotent: pausing a paused oracle (or resuming an active one) succeeds.
        with self._lock:
            try:
                access.require_identity(caller, OracleOwnerOnly)
                access.require_owner(caller, self.owner, OracleOwnerOnly)
            except StackSendError as e:
                metrics.record_rejection(self.component, "unpause_oracle" if active else "pause_oracle", e.code)
                raise
            self._active = active
        self.host.events.emit("OracleUnpaused" if active else "OraclePaused", {"sender": caller})
        log.warning("oracle %s by %s", "resumed" if active else "paused", caller)

    # ---- load/save --------------------------------------------------------

    def dump(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "owner": self.owner,
                "active": self._active,
                "rates": [q.to_dict() for _, q in sorted(self._rates.items())],
                "updaters": {k: v for k, v in sorted(self._updaters.items())},
            }

    @classmethod
    def load(cls, data: Dict[str, Any], host: Host, params: Optional[OracleParams] = None) -> "RateOracle":
        oracle = cls(owner=str(data["owner"]), host=host, params=params)
        oracle._active = bool(data.get("active", True))
        for rd in data.get("rates") or []:
            q = ExchangeRate.from_dict(rd)
            oracle._rates[q.pair] = q
        for k, v in (data.get("updaters") or {}).items():
            oracle._updaters[str(k)] = bool(v)
        return oracle


__all__ = ["RateOracle"]
