from __future__ import annotations
# stacksend/errors.py
"""
Error types for the StackSend escrow ledger and rate oracle. These are
lightweight, serializable, and safe to surface over logs or the CLI.

Every domain error carries:
  - code:   stable machine-readable string (e.g. "ERR_NOT_FOUND")
  - status: numeric code compatible with the deployed contracts
            (escrow 1xx, oracle 2xx)

Exports:
- StackSendError (base)
- EscrowError family: OwnerOnly, NotFound, Unauthorized, InvalidAmount,
  InvalidDeadline, DeadlinePassed, InvalidStatus, Paused, InvalidRecipient,
  RosterFull, MetadataTooLong
- OracleError family: OracleOwnerOnly, RateNotFound, StalePrice, InvalidRate,
  OracleUnauthorized, InvalidPair
- InvariantViolation (fatal; not a StackSendError)
"""


from typing import Any, Dict, Mapping, Optional
import json


class StackSendError(Exception):
    """Base class for StackSend domain errors."""

    code: str = "ERR_STACKSEND"
    status: int = 0
    component: str = "stacksend"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "status": self.status,
            "component": self.component,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            # Keep this compact and stable for logs
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"))
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


# ---------------------------------------------------------------------------
# Escrow ledger
# ---------------------------------------------------------------------------


class EscrowError(StackSendError):
    """Raised for escrow-ledger precondition failures."""

    code = "ERR_ESCROW"
    component = "escrow"


class OwnerOnly(EscrowError):
    """Admin operation attempted by someone other than the platform owner."""
    code = "ERR_OWNER_ONLY"
    status = 100


class NotFound(EscrowError):
    code = "ERR_NOT_FOUND"
    status = 101

    def __init__(
        self,
        message: str = "remittance not found",
        *,
        remittance_id: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if remittance_id is not None:
            d.setdefault("remittance_id", int(remittance_id))
        super().__init__(message, details=d)


class Unauthorized(EscrowError):
    """Caller is not the principal stored on the remittance (creator/recipient)."""
    code = "ERR_UNAUTHORIZED"
    status = 102


class InvalidAmount(EscrowError):
    code = "ERR_INVALID_AMOUNT"
    status = 103


class InvalidDeadline(EscrowError):
    code = "ERR_INVALID_DEADLINE"
    status = 104


class DeadlinePassed(EscrowError):
    """Contribution attempted at or after the remittance deadline."""
    code = "ERR_DEADLINE_PASSED"
    status = 107

    def __init__(
        self,
        *,
        remittance_id: int,
        deadline: int,
        now: int,
        message: str = "remittance deadline has passed",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"remittance_id": int(remittance_id), "deadline": int(deadline), "now": int(now)})
        super().__init__(message, details=d)


class InvalidStatus(EscrowError):
    code = "ERR_INVALID_STATUS"
    status = 108


class Paused(EscrowError):
    code = "ERR_CONTRACT_PAUSED"
    status = 109


class InvalidRecipient(EscrowError):
    code = "ERR_INVALID_RECIPIENT"
    status = 110


class RosterFull(EscrowError):
    """A new contributor would exceed the per-remittance contributor cap."""
    code = "ERR_ROSTER_FULL"
    status = 111


class MetadataTooLong(EscrowError):
    """Description or currency pair exceeds its bounded length."""
    code = "ERR_METADATA_TOO_LONG"
    status = 112


# ---------------------------------------------------------------------------
# Rate oracle
# ---------------------------------------------------------------------------


class OracleError(StackSendError):
    """Raised for rate-oracle precondition failures."""

    code = "ERR_ORACLE"
    component = "oracle"


class OracleOwnerOnly(OracleError):
    code = "ERR_OWNER_ONLY"
    status = 200


class RateNotFound(OracleError):
    code = "ERR_NOT_FOUND"
    status = 201

    def __init__(
        self,
        message: str = "no rate for currency pair",
        *,
        pair: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if pair is not None:
            d.setdefault("pair", pair)
        super().__init__(message, details=d)


class StalePrice(OracleError):
    code = "ERR_STALE_PRICE"
    status = 202

    def __init__(
        self,
        *,
        pair: str,
        updated_at: int,
        now: int,
        max_age: int,
        message: str = "exchange rate is stale",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update(
            {
                "pair": pair,
                "updated_at": int(updated_at),
                "age": int(now) - int(updated_at),
                "max_age": int(max_age),
            }
        )
        super().__init__(message, details=d)


class InvalidRate(OracleError):
    code = "ERR_INVALID_RATE"
    status = 203


class OracleUnauthorized(OracleError):
    """Caller is neither the oracle owner nor an authorized updater, or the oracle is paused."""
    code = "ERR_UNAUTHORIZED"
    status = 204


class InvalidPair(OracleError):
    code = "ERR_INVALID_PAIR"
    status = 205


# ---------------------------------------------------------------------------
# Fatal
# ---------------------------------------------------------------------------


class InvariantViolation(RuntimeError):
    """
    Internal state contradicts itself (e.g. a roster entry without a matching
    contribution record). Never a caller error; the ledger must not continue
    as if nothing happened.
    """


__all__ = [
    "StackSendError",
    "EscrowError",
    "OwnerOnly",
    "NotFound",
    "Unauthorized",
    "InvalidAmount",
    "InvalidDeadline",
    "DeadlinePassed",
    "InvalidStatus",
    "Paused",
    "InvalidRecipient",
    "RosterFull",
    "MetadataTooLong",
    "OracleError",
    "OracleOwnerOnly",
    "RateNotFound",
    "StalePrice",
    "InvalidRate",
    "OracleUnauthorized",
    "InvalidPair",
    "InvariantViolation",
]
