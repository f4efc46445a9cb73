from __future__ import annotations
"""
Escrow ledger: pool contributions toward a remittance and settle them exactly once.

Lifecycle
---------
1) create_remittance(caller, recipient, target, deadline, ...) -> id
2) contribute(caller, id, amount)                   (any number of callers)
     - status flips ACTIVE -> FUNDED once total_raised >= target
3) either:
   - release_funds(recipient, id)   -> net to recipient, fee to platform owner
   - cancel_remittance(creator, id) -> every contributor refunded in full

Atomicity
---------
Every public call validates all of its preconditions before touching value or
records, and holds the ledger lock for its whole duration. Transfers run inside
one `Treasury.atomic()` scope and records are replaced only after every
transfer in that scope succeeded, so a failure at any step leaves balances and
records exactly as they were before the call.

An ACTIVE remittance whose deadline passed stays ACTIVE: it can no longer be
contributed to or released, but its creator can still cancel it.
"""


import functools
import logging
import threading
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from .. import access, metrics
from ..config import EscrowParams
from ..errors import (
    DeadlinePassed,
    InvalidAmount,
    InvalidDeadline,
    InvalidRecipient,
    InvalidStatus,
    InvariantViolation,
    MetadataTooLong,
    NotFound,
    OwnerOnly,
    Paused,
    RosterFull,
    StackSendError,
    Unauthorized,
)
from ..host import Host
from ..host.treasury import InsufficientFunds
from .fees import split_fee
from .store import EscrowStore
from .types import (
    Amount,
    CancelReceipt,
    Contribution,
    ReleaseReceipt,
    Remittance,
    RemittanceStatus,
)

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _is_uint(x: Any) -> bool:
    return isinstance(x, int) and not isinstance(x, bool) and x >= 0


def _call(operation: str) -> Callable[[F], F]:
    """Serialize a mutating call and account for its rejections."""

    def deco(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self: "EscrowLedger", *args: Any, **kwargs: Any) -> Any:
            with self._lock:
                try:
                    # every mutating call is made by an authenticated identity
                    access.require_identity(args[0] if args else kwargs.get("caller"), Unauthorized)
                    return fn(self, *args, **kwargs)
                except StackSendError as e:
                    metrics.record_rejection("escrow", operation, e.code)
                    log.debug("escrow %s rejected: %s", operation, e)
                    raise

        return wrapper  # type: ignore[return-value]

    return deco


class EscrowLedger:
    """
    Custodian of pooled remittance funds.

    The pool is the `params.pool_account` identity inside the host treasury.
    Platform fees are paid to `owner`, who also controls pause, fee and the
    emergency withdrawal escape hatch.
    """

    def __init__(
        self,
        owner: str,
        host: Host,
        params: Optional[EscrowParams] = None,
        store: Optional[EscrowStore] = None,
    ) -> None:
        if not isinstance(owner, str) or not owner:
            raise ValueError("owner must be a non-empty identity")
        self.owner = owner
        self.host = host
        self.params = params or EscrowParams()
        self.params.validate()
        if self.params.pool_account == owner:
            raise ValueError("pool account must differ from the owner")
        self.store = store or EscrowStore()
        self._nonce = 0
        self._paused = False
        self._fee_bps = self.params.default_fee_bps
        self._lock = threading.RLock()

    @property
    def pool(self) -> str:
        return self.params.pool_account

    # ---- Reads ------------------------------------------------------------

    def get_remittance(self, remittance_id: int) -> Remittance:
        with self._lock:
            return self._get(remittance_id)

    def get_contribution(self, remittance_id: int, contributor: str) -> Optional[Contribution]:
        with self._lock:
            return self.store.get_contribution(remittance_id, contributor)

    def get_contributors(self, remittance_id: int) -> Tuple[str, ...]:
        with self._lock:
            self._get(remittance_id)
            return self.store.roster(remittance_id)

    def get_remittance_count(self) -> int:
        """Number of ids allocated so far (the next id to be assigned)."""
        return self._nonce

    def get_contract_owner(self) -> str:
        return self.owner

    def is_paused(self) -> bool:
        return self._paused

    def get_platform_fee(self) -> int:
        return self._fee_bps

    def pool_balance(self) -> Amount:
        return self.host.treasury.balance_of(self.pool)

    def calculate_fee(self, amount: Amount) -> Amount:
        """Fee that would be charged on releasing `amount` at the current rate."""
        return split_fee(amount, self._fee_bps)[1]

    # ---- Remittance lifecycle ---------------------------------------------

    @_call("create_remittance")
    def create_remittance(
        self,
        caller: str,
        recipient: str,
        target_amount: Amount,
        deadline: int,
        description: str = "",
        currency_pair: str = "",
    ) -> int:
        access.require_not_paused(self._paused, Paused)
        if not access.is_identity(recipient) or recipient in (caller, self.pool):
            raise InvalidRecipient(
                "recipient must be an identity distinct from the creator and the escrow pool",
                details={"creator": caller, "recipient": repr(recipient)},
            )
        if not _is_uint(target_amount) or target_amount == 0:
            raise InvalidAmount("target_amount must be a positive integer", details={"target_amount": target_amount})
        now = self.host.now()
        if not _is_uint(deadline) or deadline <= now:
            raise InvalidDeadline("deadline must be in the future", details={"deadline": deadline, "now": now})
        self._check_metadata(description, currency_pair)

        rid = self._nonce
        rem = Remittance(
            id=rid,
            creator=caller,
            recipient=recipient,
            target_amount=target_amount,
            total_raised=0,
            deadline=deadline,
            description=description,
            currency_pair=currency_pair,
            status=RemittanceStatus.ACTIVE,
            created_at=now,
        )
        event = {
            "remittance_id": rid,
            "creator": caller,
            "recipient": recipient,
            "target_amount": target_amount,
            "deadline": deadline,
            "currency_pair": currency_pair,
        }
        self.host.events.check("RemittanceCreated", event)
        self.store.put_new(rem)
        self._nonce += 1

        self.host.events.emit("RemittanceCreated", event)
        metrics.record_created()
        log.info(
            "remittance %d created by %s for %s (target=%d, deadline=%d)",
            rid, caller, recipient, target_amount, deadline,
        )
        return rid

    @_call("contribute")
    def contribute(self, caller: str, remittance_id: int, amount: Amount) -> Remittance:
        """
        Move `amount` from `caller` into the pool and credit it to the remittance.

        Returns the updated remittance record.
        """
        access.require_not_paused(self._paused, Paused)
        rem = self._get(remittance_id)
        if not _is_uint(amount) or amount == 0:
            raise InvalidAmount("amount must be a positive integer", details={"amount": amount})
        if rem.status is not RemittanceStatus.ACTIVE:
            raise InvalidStatus(
                "remittance is not accepting contributions",
                details={"remittance_id": rem.id, "status": rem.status.value},
            )
        now = self.host.now()
        if now >= rem.deadline:
            raise DeadlinePassed(remittance_id=rem.id, deadline=rem.deadline, now=now)

        prior = self.store.get_contribution(rem.id, caller)
        prior_amount = prior.amount if prior is not None else 0
        first_time = prior_amount == 0
        roster = self.store.roster(rem.id)
        if first_time:
            if caller in roster:
                raise InvariantViolation(
                    f"{caller!r} is on the roster of remittance {rem.id} without a contribution"
                )
            if len(roster) >= self.params.roster_cap:
                raise RosterFull(
                    "remittance has reached its contributor limit",
                    details={"remittance_id": rem.id, "cap": self.params.roster_cap},
                )

        new_total = rem.total_raised + amount
        funded = new_total >= rem.target_amount
        updated = replace(
            rem,
            total_raised=new_total,
            status=RemittanceStatus.FUNDED if funded else RemittanceStatus.ACTIVE,
        )

        with self.host.treasury.atomic():
            self.host.treasury.transfer(amount, caller, self.pool, memo=f"contribute:{rem.id}")
            self.store.put_contribution(
                Contribution(
                    remittance_id=rem.id,
                    contributor=caller,
                    amount=prior_amount + amount,
                    contributed_at=now,
                )
            )
            if first_time:
                self.store.append_roster(rem.id, caller)
            self.store.update(updated)

        self.host.events.emit(
            "ContributionReceived",
            {
                "remittance_id": rem.id,
                "contributor": caller,
                "amount": amount,
                "total_raised": new_total,
            },
        )
        if funded:
            self.host.events.emit("RemittanceFunded", {"remittance_id": rem.id, "total_raised": new_total})
            log.info("remittance %d funded (total=%d, target=%d)", rem.id, new_total, rem.target_amount)
        metrics.record_contribution(amount, funded=funded)
        return updated

    @_call("release_funds")
    def release_funds(self, caller: str, remittance_id: int) -> ReleaseReceipt:
        """
        Pay out a FUNDED remittance: net to the recipient, fee to the owner.

        The deadline plays no role here; a funded remittance can be released
        at any time.
        """
        rem = self._get(remittance_id)
        access.require_principal(caller, rem.recipient, Unauthorized, role="recipient")
        if rem.status is not RemittanceStatus.FUNDED:
            raise InvalidStatus(
                "remittance is not funded",
                details={"remittance_id": rem.id, "status": rem.status.value},
            )

        fee_bps = self._fee_bps
        net, fee = split_fee(rem.total_raised, fee_bps)
        now = self.host.now()

        with self.host.treasury.atomic():
            self.host.treasury.transfer(net, self.pool, rem.recipient, memo=f"release:{rem.id}")
            self.host.treasury.transfer(fee, self.pool, self.owner, memo=f"fee:{rem.id}")
            self.store.update(replace(rem, status=RemittanceStatus.COMPLETED, released_at=now))

        receipt = ReleaseReceipt(
            remittance_id=rem.id,
            recipient=rem.recipient,
            total=rem.total_raised,
            net=net,
            fee=fee,
            fee_bps=fee_bps,
            released_at=now,
        )
        self.host.events.emit(
            "FundsReleased",
            {"remittance_id": rem.id, "recipient": rem.recipient, "net": net, "fee": fee},
        )
        metrics.record_release(net, fee)
        log.info("remittance %d released: net=%d to %s, fee=%d", rem.id, net, rem.recipient, fee)
        return receipt

    @_call("cancel_remittance")
    def cancel_remittance(self, caller: str, remittance_id: int) -> CancelReceipt:
        """
        Cancel an ACTIVE or FUNDED remittance and refund every contributor.

        Refunds run in roster (first-contribution) order as one atomic group:
        either every contributor gets back exactly what they put in, or nobody
        does and the remittance keeps its status.
        """
        rem = self._get(remittance_id)
        access.require_principal(caller, rem.creator, Unauthorized, role="creator")
        if not rem.status.is_cancellable:
            raise InvalidStatus(
                "remittance can no longer be cancelled",
                details={"remittance_id": rem.id, "status": rem.status.value},
            )

        refunds = self._planned_refunds(rem)
        total = sum(amount for _, amount in refunds)
        available = self.pool_balance()
        if total > available:
            raise InsufficientFunds(account=self.pool, balance=available, amount=total)

        with self.host.treasury.atomic():
            for contributor, amount in refunds:
                self.host.treasury.transfer(amount, self.pool, contributor, memo=f"refund:{rem.id}")
            self.store.update(replace(rem, status=RemittanceStatus.CANCELLED))

        for contributor, amount in refunds:
            self.host.events.emit(
                "ContributorRefunded",
                {"remittance_id": rem.id, "contributor": contributor, "amount": amount},
            )
        self.host.events.emit("RemittanceCancelled", {"remittance_id": rem.id, "refunded": total})
        metrics.record_cancel(total, len(refunds))
        log.info("remittance %d cancelled: %d refunded to %d contributors", rem.id, total, len(refunds))
        return CancelReceipt(remittance_id=rem.id, refunds=tuple(refunds))

    # ---- Admin ------------------------------------------------------------

    @_call("pause")
    def pause(self, caller: str) -> None:
        access.require_owner(caller, self.owner, OwnerOnly)
        access.require_not_paused(self._paused, Paused)
        self._paused = True
        self.host.events.emit("ContractPaused", {"sender": caller})
        log.warning("escrow paused by %s", caller)

    @_call("unpause")
    def unpause(self, caller: str) -> None:
        access.require_owner(caller, self.owner, OwnerOnly)
        if not self._paused:
            raise InvalidStatus("contract is not paused")
        self._paused = False
        self.host.events.emit("ContractUnpaused", {"sender": caller})
        log.warning("escrow unpaused by %s", caller)

    @_call("update_platform_fee")
    def update_platform_fee(self, caller: str, new_bps: int) -> None:
        access.require_owner(caller, self.owner, OwnerOnly)
        if not _is_uint(new_bps) or new_bps > self.params.max_fee_bps:
            raise InvalidAmount(
                f"fee must be between 0 and {self.params.max_fee_bps} bps",
                details={"fee_bps": new_bps},
            )
        previous = self._fee_bps
        self._fee_bps = new_bps
        self.host.events.emit("PlatformFeeUpdated", {"previous_bps": previous, "fee_bps": new_bps})
        log.info("platform fee changed %d -> %d bps", previous, new_bps)

    @_call("emergency_withdraw")
    def emergency_withdraw(self, caller: str, amount: Amount, recipient: str) -> None:
        """
        Owner-only transfer of `amount` from the shared pool to `recipient`.

        This is a trust escape hatch for recovering stuck funds. It is not tied
        to any remittance or contributor and does not update their records, so
        using it can leave later releases or refunds underfunded.
        """
        access.require_owner(caller, self.owner, OwnerOnly)
        if not _is_uint(amount) or amount == 0:
            raise InvalidAmount("amount must be a positive integer", details={"amount": amount})
        if not access.is_identity(recipient) or recipient == self.pool:
            raise InvalidRecipient("recipient must be a non-empty identity other than the escrow pool")

        self.host.treasury.transfer(amount, self.pool, recipient, memo="emergency")

        self.host.events.emit("EmergencyWithdraw", {"amount": amount, "recipient": recipient})
        metrics.record_emergency_withdraw(amount)
        log.warning("emergency withdrawal of %d from pool to %s by %s", amount, recipient, caller)

    # ---- Internals --------------------------------------------------------

    def _get(self, remittance_id: int) -> Remittance:
        rem = self.store.get(remittance_id) if _is_uint(remittance_id) else None
        if rem is None:
            raise NotFound(remittance_id=remittance_id if _is_uint(remittance_id) else None)
        return rem

    def _check_metadata(self, description: str, currency_pair: str) -> None:
        for name, value, limit in (
            ("description", description, self.params.max_description_len),
            ("currency_pair", currency_pair, self.params.max_currency_pair_len),
        ):
            if not isinstance(value, str):
                raise MetadataTooLong(f"{name} must be a string", details={"field": name})
            if len(value) > limit:
                raise MetadataTooLong(
                    f"{name} exceeds {limit} characters",
                    details={"field": name, "length": len(value), "limit": limit},
                )

    def _planned_refunds(self, rem: Remittance) -> List[Tuple[str, Amount]]:
        refunds: List[Tuple[str, Amount]] = []
        for contributor in self.store.roster(rem.id):
            c = self.store.get_contribution(rem.id, contributor)
            if c is None or c.amount <= 0:
                raise InvariantViolation(
                    f"roster entry {contributor!r} of remittance {rem.id} has no contribution record"
                )
            refunds.append((contributor, c.amount))
        total = sum(amount for _, amount in refunds)
        if total != rem.total_raised:
            raise InvariantViolation(
                f"remittance {rem.id}: contributions sum to {total} but total_raised is {rem.total_raised}"
            )
        return refunds

    # ---- load/save --------------------------------------------------------

    def dump(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "owner": self.owner,
                "nonce": self._nonce,
                "paused": self._paused,
                "fee_bps": self._fee_bps,
                "store": self.store.dump(),
            }

    @classmethod
    def load(cls, data: Dict[str, Any], host: Host, params: Optional[EscrowParams] = None) -> "EscrowLedger":
        ledger = cls(
            owner=str(data["owner"]),
            host=host,
            params=params,
            store=EscrowStore.load(data.get("store") or {}),
        )
        ledger._nonce = int(data.get("nonce", len(ledger.store)))
        if ledger._nonce < len(ledger.store):
            raise InvariantViolation("remittance nonce is behind the number of stored remittances")
        ledger._paused = bool(data.get("paused", False))
        ledger._fee_bps = int(data.get("fee_bps", ledger.params.default_fee_bps))
        return ledger


__all__ = ["EscrowLedger"]
