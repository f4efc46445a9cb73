# -*- coding: utf-8 -*-
"""
stacksend.access
================

Flat capability checks shared by the escrow ledger and the rate oracle.

Every check takes the authenticated caller plus the stored identity (or set)
it must match, and answers allow/deny. The `require_*` variants raise the
component-specific error class passed in, so the escrow reports
``OwnerOnly``/``Unauthorized`` and the oracle ``OracleOwnerOnly``/
``OracleUnauthorized`` from the same helpers.

Usage
-----
    from stacksend import access
    from stacksend.errors import OwnerOnly, Paused

    def pause(self, caller: str) -> None:
        access.require_owner(caller, self.owner, OwnerOnly)
        access.require_not_paused(self._paused, Paused)
"""
from __future__ import annotations

from typing import Any, Mapping, Type

from .errors import StackSendError

__all__ = [
    "is_identity",
    "is_owner",
    "is_principal",
    "is_authorized_updater",
    "require_identity",
    "require_owner",
    "require_principal",
    "require_authorized_updater",
    "require_not_paused",
]


# ---- Predicates --------------------------------------------------------------


def is_identity(value: Any) -> bool:
    """Identities are opaque non-empty strings."""
    return isinstance(value, str) and bool(value)


def is_owner(caller: str, owner: str) -> bool:
    """Return True if `caller` is the administrative owner."""
    return bool(owner) and caller == owner


def is_principal(caller: str, principal: str) -> bool:
    """Return True if `caller` is exactly the stored principal (creator, recipient)."""
    return bool(principal) and caller == principal


def is_authorized_updater(identity: str, owner: str, updaters: Mapping[str, bool]) -> bool:
    """
    The owner is implicitly authorized; anyone else needs an explicit True
    entry. Missing entries default to False.
    """
    if not is_identity(identity):
        return False
    if is_owner(identity, owner):
        return True
    return bool(updaters.get(identity, False))


# ---- Guards ------------------------------------------------------------------


def require_identity(caller: Any, error: Type[StackSendError]) -> None:
    if not is_identity(caller):
        raise error("caller must be a non-empty identity", details={"caller": repr(caller)})


def require_owner(caller: str, owner: str, error: Type[StackSendError]) -> None:
    if not is_owner(caller, owner):
        raise error("caller is not the owner", details={"caller": caller})


def require_principal(caller: str, principal: str, error: Type[StackSendError], *, role: str) -> None:
    if not is_principal(caller, principal):
        raise error(f"caller is not the {role}", details={"caller": caller, "role": role})


def require_authorized_updater(
    caller: str, owner: str, updaters: Mapping[str, bool], error: Type[StackSendError]
) -> None:
    if not is_authorized_updater(caller, owner, updaters):
        raise error("caller is not an authorized updater", details={"caller": caller})


def require_not_paused(paused: bool, error: Type[StackSendError]) -> None:
    if paused:
        raise error("contract is paused")
