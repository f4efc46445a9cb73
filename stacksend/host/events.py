from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..errors import StackSendError

# Basic bounds (kept generous; the ledger only emits small records).
MAX_EVENT_NAME_LEN = 64
MAX_KEY_LEN = 64
MAX_STR_LEN = 4096

# Keys must be identifier-like: letters/underscore, then letters/digits/underscore.
_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class EventError(StackSendError):
    code = "ERR_EVENT_INVALID"
    component = "host"


@dataclass(frozen=True)
class Event:
    """An emitted ledger event, in emission order."""

    seq: int
    name: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"seq": self.seq, "name": self.name, "args": dict(self.args)}


class EventLog:
    """
    Validated, append-only event sink.

    Indexing and persistence of events belong to the host; this log only keeps
    what was emitted during the current process.
    """

    def __init__(self) -> None:
        self._events: List[Event] = []

    # --- Validation helpers -------------------------------------------------

    def _check_name(self, name: Any) -> str:
        if not isinstance(name, str) or not name:
            raise EventError("event name must be a non-empty str", details={"where": "name"})
        if len(name) > MAX_EVENT_NAME_LEN:
            raise EventError("event name too long", details={"where": "name_length", "len": len(name)})
        return name

    def _check_key(self, key: Any) -> str:
        if not isinstance(key, str) or not key:
            raise EventError("event key must be a non-empty str", details={"where": "key"})
        if len(key) > MAX_KEY_LEN or not _KEY_RE.match(key):
            raise EventError("event key has invalid characters", details={"where": "key_grammar", "key": key})
        return key

    def _check_value(self, value: Any) -> Any:
        if value is None or isinstance(value, (bool, int)):
            return value
        if isinstance(value, str):
            if len(value) > MAX_STR_LEN:
                raise EventError("event str arg too long", details={"where": "value_length", "len": len(value)})
            return value
        raise EventError(
            "unsupported event arg type",
            details={"where": "value_type", "py_type": type(value).__name__},
        )

    # --- Core sink operations -----------------------------------------------

    def check(self, name: str, args: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Validate an event without emitting it; returns the checked args."""
        self._check_name(name)
        checked: Dict[str, Any] = {}
        for k, v in (args or {}).items():
            checked[self._check_key(k)] = self._check_value(v)
        return checked

    def emit(self, name: str, args: Optional[Mapping[str, Any]] = None) -> Event:
        checked = self.check(name, args)
        ev = Event(seq=len(self._events) + 1, name=name, args=checked)
        self._events.append(ev)
        return ev

    def events(self, name: Optional[str] = None) -> Tuple[Event, ...]:
        if name is None:
            return tuple(self._events)
        return tuple(e for e in self._events if e.name == name)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


__all__ = ["Event", "EventError", "EventLog", "MAX_EVENT_NAME_LEN", "MAX_KEY_LEN", "MAX_STR_LEN"]
