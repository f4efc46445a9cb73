from __future__ import annotations
"""
A complete local deployment: one host (treasury + manual clock + events), one
escrow ledger and one rate oracle, all administered by the same owner.

The whole deployment round-trips through a JSON-friendly dict, which is how
the CLI devnet persists state between invocations. Events are not part of the
snapshot; historical event indexing belongs to the host.
"""


import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .config import StackSendConfig
from .escrow import EscrowLedger
from .host import Host, ManualClock, Treasury
from .oracle import RateOracle

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


@dataclass
class Deployment:
    host: Host
    escrow: EscrowLedger
    oracle: RateOracle
    config: StackSendConfig

    @property
    def owner(self) -> str:
        return self.escrow.owner

    @property
    def clock(self) -> ManualClock:
        clock = self.host.clock
        if not isinstance(clock, ManualClock):
            raise TypeError("deployment clock is not a ManualClock")
        return clock

    @classmethod
    def create(cls, owner: str, now: int = 0, config: Optional[StackSendConfig] = None) -> "Deployment":
        cfg = config or StackSendConfig()
        cfg.validate()
        host = Host(treasury=Treasury(), clock=ManualClock(start=now))
        dep = cls(
            host=host,
            escrow=EscrowLedger(owner, host, params=cfg.escrow),
            oracle=RateOracle(owner, host, params=cfg.oracle),
            config=cfg,
        )
        log.info("deployment created for owner %s at t=%d", owner, now)
        return dep

    def dump(self) -> Dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "now": self.host.now(),
            "config": self.config.to_dict(),
            "treasury": self.host.treasury.dump(),
            "escrow": self.escrow.dump(),
            "oracle": self.oracle.dump(),
        }

    @classmethod
    def load(cls, data: Dict[str, Any], config: Optional[StackSendConfig] = None) -> "Deployment":
        version = int(data.get("version", SNAPSHOT_VERSION))
        if version != SNAPSHOT_VERSION:
            raise ValueError(f"unsupported snapshot version {version}")
        cfg = config or StackSendConfig.from_dict(data.get("config") or {})
        host = Host(
            treasury=Treasury.load(data.get("treasury") or {}),
            clock=ManualClock(start=int(data.get("now", 0))),
        )
        escrow = EscrowLedger.load(data["escrow"], host, params=cfg.escrow)
        oracle = RateOracle.load(data["oracle"], host, params=cfg.oracle)
        if escrow.owner != oracle.owner:
            raise ValueError("escrow and oracle owners differ in snapshot")
        return cls(host=host, escrow=escrow, oracle=oracle, config=cfg)


__all__ = ["Deployment", "SNAPSHOT_VERSION"]
