from __future__ import annotations

from hypothesis import given, settings, strategies as st

from stacksend.errors import DeadlinePassed, InvalidStatus
from stacksend.escrow import EscrowLedger, RemittanceStatus, split_fee
from stacksend.host import Host, ManualClock, Treasury
from stacksend.tests.conftest import ALICE, BOB, CAROL, DAVE, DAY, OWNER, START

CONTRIBUTORS = (ALICE, BOB, CAROL, DAVE)
FUNDS = 10**12

STEPS = st.lists(
    st.tuples(st.sampled_from(CONTRIBUTORS), st.integers(min_value=1, max_value=10**6)),
    min_size=0,
    max_size=25,
)


def _setup(target: int):
    host = Host(treasury=Treasury(), clock=ManualClock(start=START))
    for who in CONTRIBUTORS:
        host.treasury.credit(who, FUNDS)
    ledger = EscrowLedger(OWNER, host)
    rid = ledger.create_remittance(ALICE, BOB, target, START + DAY)
    return host, ledger, rid


@given(total=st.integers(min_value=0, max_value=10**30), fee_bps=st.integers(min_value=0, max_value=500))
def test_fee_split_is_exact(total, fee_bps):
    net, fee = split_fee(total, fee_bps)
    assert fee == total * fee_bps // 10_000
    assert net + fee == total
    assert 0 <= fee <= total


@settings(max_examples=60, deadline=None)
@given(target=st.integers(min_value=1, max_value=5 * 10**6), steps=STEPS)
def test_contributions_are_conserved(target, steps):
    host, ledger, rid = _setup(target)
    accepted = {}
    funded_seen = False
    for who, amount in steps:
        try:
            rem = ledger.contribute(who, rid, amount)
        except InvalidStatus:
            assert funded_seen
            continue
        accepted[who] = accepted.get(who, 0) + amount
        if funded_seen:
            raise AssertionError("contribution accepted after funding")
        funded_seen = rem.status is RemittanceStatus.FUNDED

    rem = ledger.get_remittance(rid)
    total = sum(accepted.values())
    assert rem.total_raised == total
    assert ledger.pool_balance() == total
    assert (rem.status is RemittanceStatus.FUNDED) == (total >= target)
    for who, amount in accepted.items():
        assert ledger.get_contribution(rid, who).amount == amount
    assert set(ledger.get_contributors(rid)) == set(accepted)
    assert host.treasury.total_supply() == FUNDS * len(CONTRIBUTORS)


@settings(max_examples=60, deadline=None)
@given(target=st.integers(min_value=1, max_value=5 * 10**6), steps=STEPS)
def test_cancel_restores_every_balance(target, steps):
    host, ledger, rid = _setup(target)
    for who, amount in steps:
        try:
            ledger.contribute(who, rid, amount)
        except InvalidStatus:
            break
    ledger.cancel_remittance(ALICE, rid)
    for who in CONTRIBUTORS:
        assert host.treasury.balance_of(who) == FUNDS
    assert ledger.pool_balance() == 0


@settings(max_examples=40, deadline=None)
@given(
    amount=st.integers(min_value=1, max_value=10**9),
    fee_bps=st.integers(min_value=0, max_value=500),
)
def test_release_conserves_value(amount, fee_bps):
    host, ledger, rid = _setup(1)
    ledger.update_platform_fee(OWNER, fee_bps)
    ledger.contribute(CAROL, rid, amount)
    receipt = ledger.release_funds(BOB, rid)
    assert receipt.net + receipt.fee == amount
    assert host.treasury.balance_of(BOB) == FUNDS + receipt.net
    assert host.treasury.balance_of(OWNER) == receipt.fee
    assert ledger.pool_balance() == 0


@settings(max_examples=30, deadline=None)
@given(late_by=st.integers(min_value=0, max_value=10 * DAY))
def test_contributions_rejected_from_deadline_on(late_by):
    host, ledger, rid = _setup(10)
    host.clock.set(START + DAY + late_by)
    try:
        ledger.contribute(CAROL, rid, 1)
    except DeadlinePassed:
        pass
    else:
        raise AssertionError("contribution accepted after deadline")
    assert ledger.get_remittance(rid).total_raised == 0
