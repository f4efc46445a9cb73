"""
stacksend.host - the hosting-ledger facilities the escrow and oracle consume:

- Treasury: atomic value transfer between identities (+ journaled groups)
- Clock:    monotonic current-time reader
- EventLog: append-only sink for emitted events

The caller identity is supplied explicitly to every mutating operation; the
host is responsible for authenticating it before dispatch.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .clock import Clock, ClockError, ManualClock, SystemClock
from .events import Event, EventError, EventLog
from .treasury import InsufficientFunds, TransferError, TransferRecord, Treasury


@dataclass
class Host:
    """Bundle of host facilities shared by the contracts of one deployment."""

    treasury: Treasury = field(default_factory=Treasury)
    clock: Clock = field(default_factory=ManualClock)
    events: EventLog = field(default_factory=EventLog)

    def now(self) -> int:
        return self.clock.now()


__all__ = [
    "Host",
    "Clock",
    "ClockError",
    "ManualClock",
    "SystemClock",
    "Event",
    "EventError",
    "EventLog",
    "InsufficientFunds",
    "TransferError",
    "TransferRecord",
    "Treasury",
]
