"""
stacksend.host.clock - current-time readers consumed by the ledger and oracle.

The hosting ledger supplies a monotonic timestamp (seconds, or a chain-defined
unit such as block height). Contracts never read wall-clock time directly; they
ask the clock they were constructed with.

- ManualClock: deterministic, caller-driven; used by tests and the CLI devnet.
- SystemClock: wall-clock seconds, clamped so it never moves backwards.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Protocol, runtime_checkable

from ..errors import StackSendError


class ClockError(StackSendError):
    """Invalid timestamp or an attempt to move a clock backwards."""

    code = "ERR_CLOCK"
    component = "host"


def _require_non_negative_int(name: str, v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ClockError(f"{name} must be int, got {type(v).__name__}")
    if v < 0:
        raise ClockError(f"{name} must be non-negative, got {v}")
    return v


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int: ...


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        self._now = _require_non_negative_int("start", start)
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        _require_non_negative_int("seconds", seconds)
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, ts: int) -> int:
        _require_non_negative_int("ts", ts)
        with self._lock:
            if ts < self._now:
                raise ClockError(
                    "clock cannot move backwards",
                    details={"now": self._now, "requested": ts},
                )
            self._now = ts
            return self._now

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"ManualClock(now={self._now})"


class SystemClock:
    """Wall-clock seconds since the epoch, never decreasing."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


__all__ = ["Clock", "ClockError", "ManualClock", "SystemClock"]
