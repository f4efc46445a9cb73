from __future__ import annotations

import pytest

from stacksend.config import EscrowParams
from stacksend.errors import (
    DeadlinePassed,
    InvalidAmount,
    InvalidStatus,
    NotFound,
    Paused,
    RosterFull,
    Unauthorized,
)
from stacksend.escrow import EscrowLedger, RemittanceStatus
from stacksend.host import InsufficientFunds
from stacksend.tests.conftest import ALICE, BOB, CAROL, DAVE, DAY, OWNER, START, STARTING_BALANCE


def test_contribution_moves_value_into_pool(ledger, host, remittance_id):
    rem = ledger.contribute(CAROL, remittance_id, 300_000)
    assert rem.total_raised == 300_000
    assert rem.status is RemittanceStatus.ACTIVE
    assert ledger.pool_balance() == 300_000
    assert host.treasury.balance_of(CAROL) == STARTING_BALANCE - 300_000
    c = ledger.get_contribution(remittance_id, CAROL)
    assert c is not None and c.amount == 300_000 and c.contributed_at == START
    assert ledger.get_contributors(remittance_id) == (CAROL,)


def test_repeat_contributions_accumulate_without_duplicating_roster(ledger, clock, remittance_id):
    ledger.contribute(CAROL, remittance_id, 100)
    clock.advance(10)
    ledger.contribute(DAVE, remittance_id, 200)
    clock.advance(10)
    ledger.contribute(CAROL, remittance_id, 50)
    c = ledger.get_contribution(remittance_id, CAROL)
    assert c.amount == 150
    assert c.contributed_at == START + 20
    assert ledger.get_contributors(remittance_id) == (CAROL, DAVE)
    assert ledger.get_remittance(remittance_id).total_raised == 350


def test_creator_and_recipient_may_contribute(ledger, remittance_id):
    ledger.contribute(ALICE, remittance_id, 10)
    ledger.contribute(BOB, remittance_id, 10)
    assert ledger.get_contributors(remittance_id) == (ALICE, BOB)


def test_reaching_target_marks_funded(ledger, host, remittance_id):
    ledger.contribute(CAROL, remittance_id, 600_000)
    rem = ledger.contribute(DAVE, remittance_id, 400_000)
    assert rem.status is RemittanceStatus.FUNDED
    assert len(host.events.events("RemittanceFunded")) == 1


def test_overshoot_is_kept(ledger, remittance_id):
    rem = ledger.contribute(CAROL, remittance_id, 1_500_000)
    assert rem.total_raised == 1_500_000
    assert rem.status is RemittanceStatus.FUNDED
    assert ledger.pool_balance() == 1_500_000


def test_funded_remittance_rejects_further_contributions(ledger, remittance_id):
    ledger.contribute(CAROL, remittance_id, 1_000_000)
    with pytest.raises(InvalidStatus):
        ledger.contribute(DAVE, remittance_id, 1)
    assert ledger.get_remittance(remittance_id).status is RemittanceStatus.FUNDED


def test_unknown_remittance(ledger):
    with pytest.raises(NotFound):
        ledger.contribute(CAROL, 42, 1)


@pytest.mark.parametrize("amount", [0, -1, False])
def test_amount_must_be_positive(ledger, remittance_id, amount):
    with pytest.raises(InvalidAmount):
        ledger.contribute(CAROL, remittance_id, amount)


def test_deadline_is_exclusive(ledger, clock, remittance_id):
    clock.set(START + DAY - 1)
    ledger.contribute(CAROL, remittance_id, 1)
    clock.set(START + DAY)
    with pytest.raises(DeadlinePassed):
        ledger.contribute(CAROL, remittance_id, 1)
    # still active, just closed to contributions
    assert ledger.get_remittance(remittance_id).status is RemittanceStatus.ACTIVE


def test_paused_blocks_contributions(ledger, remittance_id):
    ledger.pause(OWNER)
    with pytest.raises(Paused):
        ledger.contribute(CAROL, remittance_id, 1)
    ledger.unpause(OWNER)
    ledger.contribute(CAROL, remittance_id, 1)


def test_insufficient_balance_changes_nothing(ledger, host, remittance_id):
    with pytest.raises(InsufficientFunds):
        ledger.contribute(CAROL, remittance_id, STARTING_BALANCE + 1)
    assert ledger.get_contribution(remittance_id, CAROL) is None
    assert ledger.get_contributors(remittance_id) == ()
    assert ledger.get_remittance(remittance_id).total_raised == 0
    assert ledger.pool_balance() == 0
    assert host.events.events("ContributionReceived") == ()


def test_roster_cap(host):
    ledger = EscrowLedger(OWNER, host, params=EscrowParams(roster_cap=2))
    rid = ledger.create_remittance(ALICE, BOB, 1_000, START + DAY)
    ledger.contribute(CAROL, rid, 1)
    ledger.contribute(DAVE, rid, 1)
    with pytest.raises(RosterFull):
        ledger.contribute(ALICE, rid, 1)
    # existing contributors can still top up
    ledger.contribute(CAROL, rid, 1)
    assert ledger.get_contribution(rid, CAROL).amount == 2
    assert host.treasury.balance_of(ALICE) == STARTING_BALANCE


def test_missing_contribution_is_none(ledger, remittance_id):
    assert ledger.get_contribution(remittance_id, CAROL) is None
    assert ledger.get_contribution(99, CAROL) is None


@pytest.mark.parametrize("caller", ["", b"carol", None])
def test_contributor_must_be_an_identity(ledger, host, remittance_id, caller):
    with pytest.raises(Unauthorized):
        ledger.contribute(caller, remittance_id, 10)
    assert ledger.get_contributors(remittance_id) == ()
    assert ledger.pool_balance() == 0
    assert host.events.events("ContributionReceived") == ()
