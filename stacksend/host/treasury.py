"""
stacksend.host.treasury - deterministic, in-memory value ledger for the host.

This is the "move units of value from account A to account B" primitive the
escrow ledger is written against. Real deployments bind the ledger to the
hosting chain's settlement layer instead; this module keeps the same surface so
the escrow can run locally (CLI devnet, tests).

- balance_of(account) -> int
- credit(account, amount)             # host/faucet funding only
- transfer(amount, frm, to)           # debit frm, credit to; raises on failure
- atomic()                            # journaled scope; all-or-nothing

Notes
-----
* Identities are opaque non-empty strings.
* Amounts are non-negative integers in the smallest unit; a zero-amount
  transfer is a no-op and is not journaled.
* A coarse RLock serializes all access. `atomic()` holds it for the whole
  scope so concurrent callers never observe a half-applied group of transfers.
* Only the outermost `atomic()` scope snapshots and restores; inner scopes
  join it.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from ..errors import StackSendError

MAX_BALANCE_BITS = 128


class TransferError(StackSendError):
    """Base error for value-transfer failures."""

    code = "ERR_TRANSFER"
    status = 1
    component = "host"


class InsufficientFunds(TransferError):
    """Raised when the debited account lacks the balance for a transfer."""

    code = "ERR_INSUFFICIENT_BALANCE"

    def __init__(
        self,
        *,
        account: str,
        balance: int,
        amount: int,
        message: str = "insufficient balance",
    ) -> None:
        super().__init__(
            message,
            details={"account": account, "balance": int(balance), "amount": int(amount)},
        )


@dataclass(frozen=True)
class TransferRecord:
    seq: int
    frm: str
    to: str
    amount: int
    memo: str = ""

    def to_dict(self) -> Dict:
        return asdict(self)


# ------------------------------ Addr & Amount ------------------------------ #

def _check_account(account: str) -> str:
    if not isinstance(account, str) or not account:
        raise TransferError("account must be a non-empty string", details={"account": repr(account)})
    return account


def _check_amount(amount: int) -> int:
    # bool is a subclass of int; reject it explicitly
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TransferError("amount must be int", details={"type": type(amount).__name__})
    if amount < 0:
        raise TransferError("amount must be non-negative", details={"amount": amount})
    if amount.bit_length() > MAX_BALANCE_BITS:
        raise TransferError(f"amount exceeds {MAX_BALANCE_BITS}-bit limit")
    return amount


def _add_checked(a: int, b: int) -> int:
    c = a + b
    if c.bit_length() > MAX_BALANCE_BITS:
        raise TransferError("balance overflow")
    return c


class Treasury:
    """
    In-memory balances keyed by identity.

    Storage-agnostic: call `dump()` to serialize to a JSON-friendly dict, and
    `load()` to restore.
    """

    def __init__(self) -> None:
        self._balances: Dict[str, int] = {}
        self._journal: List[TransferRecord] = []
        self._seq = 0
        self._lock = threading.RLock()
        self._depth = 0
        self._snapshot: Optional[Tuple[Dict[str, int], int, int]] = None

    # --- load/save ---

    def dump(self) -> Dict:
        with self._lock:
            return {
                "balances": {k: v for k, v in sorted(self._balances.items())},
                "journal": [r.to_dict() for r in self._journal],
            }

    @classmethod
    def load(cls, data: Dict) -> "Treasury":
        t = cls()
        for k, v in (data.get("balances") or {}).items():
            t._balances[_check_account(k)] = _check_amount(int(v))
        for rd in data.get("journal") or []:
            rec = TransferRecord(
                seq=int(rd["seq"]),
                frm=str(rd["frm"]),
                to=str(rd["to"]),
                amount=int(rd["amount"]),
                memo=str(rd.get("memo", "")),
            )
            t._journal.append(rec)
            t._seq = max(t._seq, rec.seq)
        return t

    # --- introspection ---

    def balance_of(self, account: str) -> int:
        _check_account(account)
        with self._lock:
            return self._balances.get(account, 0)

    def journal(self) -> Tuple[TransferRecord, ...]:
        with self._lock:
            return tuple(self._journal)

    def total_supply(self) -> int:
        with self._lock:
            return sum(self._balances.values())

    # --- mutations (all locked) ---

    def credit(self, account: str, amount: int) -> int:
        """
        Host/testing helper: increase the balance of `account` by `amount`.
        Returns the new balance.
        """
        _check_account(account)
        _check_amount(amount)
        with self._lock:
            new = _add_checked(self._balances.get(account, 0), amount)
            self._balances[account] = new
            return new

    def transfer(self, amount: int, frm: str, to: str, *, memo: str = "") -> Optional[TransferRecord]:
        """
        Debit `frm` and credit `to` by `amount`.

        Atomic w.r.t. this ledger: either both legs apply or neither does.
        """
        _check_amount(amount)
        _check_account(frm)
        _check_account(to)
        if frm == to:
            raise TransferError("sender and recipient must differ", details={"account": frm})

        if amount == 0:
            return None  # no-op

        with self._lock:
            cur_from = self._balances.get(frm, 0)
            if amount > cur_from:
                raise InsufficientFunds(account=frm, balance=cur_from, amount=amount)
            new_to = _add_checked(self._balances.get(to, 0), amount)
            self._balances[frm] = cur_from - amount
            self._balances[to] = new_to
            self._seq += 1
            rec = TransferRecord(seq=self._seq, frm=frm, to=to, amount=amount, memo=memo)
            self._journal.append(rec)
            return rec

    # --- journaling ---

    @contextmanager
    def atomic(self) -> Iterator["Treasury"]:
        """
        Group several transfers into one all-or-nothing unit.

        If the block raises, every balance and journal change made inside the
        outermost scope is rolled back and the exception propagates.
        """
        with self._lock:
            outer = self._depth == 0
            if outer:
                self._snapshot = (dict(self._balances), len(self._journal), self._seq)
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outer:
                    self._rollback()
                raise
            finally:
                self._depth -= 1
                if outer:
                    self._snapshot = None

    def _rollback(self) -> None:
        assert self._snapshot is not None
        balances, journal_len, seq = self._snapshot
        self._balances = balances
        del self._journal[journal_len:]
        self._seq = seq


__all__ = [
    "MAX_BALANCE_BITS",
    "TransferError",
    "InsufficientFunds",
    "TransferRecord",
    "Treasury",
]
