from __future__ import annotations

"""
In-memory record store for the escrow ledger.

Holds remittances, per-(remittance, contributor) contribution records and the
per-remittance contributor roster. Nothing is ever deleted: completed and
cancelled remittances stay as audit records. Replaceable by a persistent
backend with the same API.
"""

from typing import Dict, List, Optional, Tuple

from ..errors import InvariantViolation
from .types import Contribution, Remittance


class EscrowStore:
    def __init__(self) -> None:
        self._remittances: Dict[int, Remittance] = {}
        self._contributions: Dict[Tuple[int, str], Contribution] = {}
        self._rosters: Dict[int, List[str]] = {}

    # --- remittances ---

    def get(self, remittance_id: int) -> Optional[Remittance]:
        return self._remittances.get(remittance_id)

    def put_new(self, rem: Remittance) -> None:
        if rem.id in self._remittances:
            raise InvariantViolation(f"remittance id {rem.id} allocated twice")
        self._remittances[rem.id] = rem
        self._rosters[rem.id] = []

    def update(self, rem: Remittance) -> None:
        if rem.id not in self._remittances:
            raise InvariantViolation(f"update of unknown remittance id {rem.id}")
        self._remittances[rem.id] = rem

    def __len__(self) -> int:
        return len(self._remittances)

    # --- contributions ---

    def get_contribution(self, remittance_id: int, contributor: str) -> Optional[Contribution]:
        return self._contributions.get((remittance_id, contributor))

    def put_contribution(self, c: Contribution) -> None:
        self._contributions[(c.remittance_id, c.contributor)] = c

    # --- roster ---

    def roster(self, remittance_id: int) -> Tuple[str, ...]:
        return tuple(self._rosters.get(remittance_id, ()))

    def append_roster(self, remittance_id: int, contributor: str) -> None:
        members = self._rosters.setdefault(remittance_id, [])
        if contributor in members:
            raise InvariantViolation(
                f"contributor {contributor!r} already on roster of remittance {remittance_id}"
            )
        members.append(contributor)

    # --- load/save ---

    def dump(self) -> Dict:
        return {
            "remittances": [r.to_dict() for _, r in sorted(self._remittances.items())],
            "contributions": [
                c.to_dict() for _, c in sorted(self._contributions.items(), key=lambda kv: kv[0])
            ],
            "rosters": {str(k): list(v) for k, v in sorted(self._rosters.items())},
        }

    @classmethod
    def load(cls, data: Dict) -> "EscrowStore":
        st = cls()
        for rd in data.get("remittances") or []:
            st.put_new(Remittance.from_dict(rd))
        for cd in data.get("contributions") or []:
            st.put_contribution(Contribution.from_dict(cd))
        for k, members in (data.get("rosters") or {}).items():
            rid = int(k)
            if rid not in st._remittances:
                raise InvariantViolation(f"roster for unknown remittance id {rid}")
            for who in members:
                st.append_roster(rid, str(who))
        return st


__all__ = ["EscrowStore"]
