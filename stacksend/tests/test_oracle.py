from __future__ import annotations

import pytest

from stacksend.errors import (
    InvalidPair,
    InvalidRate,
    OracleOwnerOnly,
    OracleUnauthorized,
    RateNotFound,
    StalePrice,
)
from stacksend.oracle import RateOracle
from stacksend.tests.conftest import ALICE, BOB, DAY, OWNER, START

USD_KES = 15_050_000_000  # 150.50 with 8 decimals


def test_owner_updates_and_reads(oracle, host):
    q = oracle.update_exchange_rate(OWNER, "USD-KES", USD_KES)
    assert q.rate == USD_KES
    assert q.updated_at == START
    assert q.updater == OWNER
    assert oracle.get_exchange_rate("USD-KES") == q
    assert oracle.get_fresh_exchange_rate("USD-KES") == q
    ev = host.events.events("ExchangeRateUpdated")
    assert ev[0].args["pair"] == "USD-KES"


def test_constants(oracle):
    assert oracle.get_rate_decimals() == 8
    assert oracle.get_max_rate_age() == 86_400
    assert oracle.get_contract_owner() == OWNER
    assert oracle.is_active()


def test_update_overwrites_without_monotonicity(oracle, clock):
    oracle.update_exchange_rate(OWNER, "USD-KES", USD_KES)
    clock.advance(5)
    oracle.update_exchange_rate(OWNER, "USD-KES", 100)
    q = oracle.get_exchange_rate("USD-KES")
    assert q.rate == 100
    assert q.updated_at == START + 5


def test_missing_pair(oracle):
    with pytest.raises(RateNotFound):
        oracle.get_exchange_rate("EUR-NGN")
    with pytest.raises(RateNotFound):
        oracle.get_fresh_exchange_rate("EUR-NGN")


def test_staleness_boundary(oracle, clock):
    oracle.update_exchange_rate(OWNER, "USD-KES", USD_KES)
    clock.advance(DAY)
    assert oracle.get_fresh_exchange_rate("USD-KES").rate == USD_KES
    clock.advance(1)
    with pytest.raises(StalePrice) as exc:
        oracle.get_fresh_exchange_rate("USD-KES")
    assert exc.value.details["age"] == DAY + 1
    # the raw read has no staleness check
    assert oracle.get_exchange_rate("USD-KES").rate == USD_KES


def test_rate_bounds(oracle):
    oracle.update_exchange_rate(OWNER, "A", 100)
    oracle.update_exchange_rate(OWNER, "B", 10**16)
    for bad in (0, 50, 99, 10**16 + 1, 99_999_999_999_999_999, True, "100"):
        with pytest.raises(InvalidRate):
            oracle.update_exchange_rate(OWNER, "C", bad)
    with pytest.raises(RateNotFound):
        oracle.get_exchange_rate("C")


def test_pair_validation(oracle):
    with pytest.raises(InvalidPair):
        oracle.update_exchange_rate(OWNER, "", USD_KES)
    with pytest.raises(InvalidPair):
        oracle.update_exchange_rate(OWNER, "USD-KES-EUR", USD_KES)


def test_unauthorized_updater(oracle):
    assert not oracle.is_authorized(ALICE)
    with pytest.raises(OracleUnauthorized):
        oracle.update_exchange_rate(ALICE, "USD-KES", USD_KES)


def test_updater_lifecycle(oracle):
    oracle.add_authorized_updater(OWNER, ALICE)
    assert oracle.is_authorized(ALICE)
    q = oracle.update_exchange_rate(ALICE, "USD-KES", USD_KES)
    assert q.updater == ALICE
    oracle.remove_authorized_updater(OWNER, ALICE)
    assert not oracle.is_authorized(ALICE)
    with pytest.raises(OracleUnauthorized):
        oracle.update_exchange_rate(ALICE, "USD-KES", USD_KES)
    # revocation is recorded, not deleted
    assert oracle.dump()["updaters"] == {ALICE: False}


def test_owner_is_implicitly_authorized(oracle):
    assert oracle.is_authorized(OWNER)


def test_admin_is_owner_only(oracle):
    with pytest.raises(OracleOwnerOnly):
        oracle.add_authorized_updater(ALICE, BOB)
    with pytest.raises(OracleOwnerOnly):
        oracle.remove_authorized_updater(ALICE, BOB)
    with pytest.raises(OracleOwnerOnly):
        oracle.pause_oracle(ALICE)
    with pytest.raises(OracleOwnerOnly):
        oracle.unpause_oracle(ALICE)


def test_pause_blocks_updates_not_reads(oracle):
    oracle.update_exchange_rate(OWNER, "USD-KES", USD_KES)
    oracle.pause_oracle(OWNER)
    assert not oracle.is_active()
    with pytest.raises(OracleUnauthorized):
        oracle.update_exchange_rate(OWNER, "USD-KES", 200)
    assert oracle.get_fresh_exchange_rate("USD-KES").rate == USD_KES
    oracle.pause_oracle(OWNER)
    oracle.unpause_oracle(OWNER)
    oracle.update_exchange_rate(OWNER, "USD-KES", 200)


def test_paused_check_comes_first(oracle):
    oracle.pause_oracle(OWNER)
    with pytest.raises(OracleUnauthorized):
        oracle.update_exchange_rate(OWNER, "", 0)


def test_authorization_before_pair_and_rate(oracle):
    with pytest.raises(OracleUnauthorized):
        oracle.update_exchange_rate(ALICE, "", 0)
    with pytest.raises(InvalidPair):
        oracle.update_exchange_rate(OWNER, "", 0)


def test_dump_load(oracle, host):
    oracle.add_authorized_updater(OWNER, ALICE)
    oracle.update_exchange_rate(ALICE, "USD-KES", USD_KES)
    oracle.pause_oracle(OWNER)
    restored = RateOracle.load(oracle.dump(), host)
    assert restored.get_exchange_rate("USD-KES") == oracle.get_exchange_rate("USD-KES")
    assert restored.is_authorized(ALICE)
    assert not restored.is_active()


@pytest.mark.parametrize("caller", ["", b"owner", None])
def test_non_identity_callers_rejected(oracle, host, caller):
    with pytest.raises(OracleUnauthorized):
        oracle.update_exchange_rate(caller, "USD-KES", USD_KES)
    with pytest.raises(OracleOwnerOnly):
        oracle.add_authorized_updater(caller, ALICE)
    with pytest.raises(OracleOwnerOnly):
        oracle.pause_oracle(caller)
    assert oracle.is_active()
    assert host.events.events() == ()


@pytest.mark.parametrize("pair", [["USD", "KES"], {"pair": "USD-KES"}, None, 42])
def test_reads_reject_non_string_pairs(oracle, pair):
    with pytest.raises(InvalidPair):
        oracle.get_exchange_rate(pair)
    with pytest.raises(InvalidPair):
        oracle.get_fresh_exchange_rate(pair)


def test_is_authorized_with_non_identity(oracle):
    assert oracle.is_authorized(["x"]) is False
    assert oracle.is_authorized("") is False
