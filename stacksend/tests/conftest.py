from __future__ import annotations

import pytest

from stacksend.config import EscrowParams, OracleParams
from stacksend.escrow import EscrowLedger
from stacksend.host import Host, ManualClock, Treasury
from stacksend.oracle import RateOracle


def _addr(prefix: str, name: str) -> str:
    return prefix + name.upper().ljust(38, "0")


OWNER = _addr("SP", "owner")
ALICE = _addr("ST", "alice")
BOB = _addr("ST", "bob")
CAROL = _addr("ST", "carol")
DAVE = _addr("ST", "dave")

START = 1_000
DAY = 86_400
STARTING_BALANCE = 100_000_000_000


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=START)


@pytest.fixture
def host(clock: ManualClock) -> Host:
    h = Host(treasury=Treasury(), clock=clock)
    for who in (ALICE, BOB, CAROL, DAVE):
        h.treasury.credit(who, STARTING_BALANCE)
    return h


@pytest.fixture
def ledger(host: Host) -> EscrowLedger:
    return EscrowLedger(OWNER, host, params=EscrowParams())


@pytest.fixture
def oracle(host: Host) -> RateOracle:
    return RateOracle(OWNER, host, params=OracleParams())


@pytest.fixture
def remittance_id(ledger: EscrowLedger) -> int:
    """An ACTIVE remittance from ALICE to BOB for 1_000_000, due in one day."""
    return ledger.create_remittance(ALICE, BOB, 1_000_000, START + DAY, "school fees", "USD-KES")
