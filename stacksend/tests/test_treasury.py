from __future__ import annotations

import pytest

from stacksend.host import InsufficientFunds, TransferError, Treasury


def test_credit_and_transfer():
    t = Treasury()
    assert t.credit("a", 100) == 100
    rec = t.transfer(40, "a", "b", memo="x")
    assert rec is not None and rec.amount == 40 and rec.memo == "x"
    assert t.balance_of("a") == 60
    assert t.balance_of("b") == 40
    assert t.total_supply() == 100


def test_zero_transfer_is_noop():
    t = Treasury()
    assert t.transfer(0, "a", "b") is None
    assert t.journal() == ()


def test_insufficient_funds_leaves_balances():
    t = Treasury()
    t.credit("a", 10)
    with pytest.raises(InsufficientFunds):
        t.transfer(11, "a", "b")
    assert t.balance_of("a") == 10
    assert t.balance_of("b") == 0


@pytest.mark.parametrize("amount", [-1, True, 1.5, 2**130])
def test_bad_amounts(amount):
    t = Treasury()
    t.credit("a", 10)
    with pytest.raises(TransferError):
        t.transfer(amount, "a", "b")


def test_self_transfer_rejected():
    t = Treasury()
    t.credit("a", 10)
    with pytest.raises(TransferError):
        t.transfer(1, "a", "a")


def test_atomic_rolls_back_every_leg():
    t = Treasury()
    t.credit("a", 100)
    with pytest.raises(InsufficientFunds):
        with t.atomic():
            t.transfer(30, "a", "b")
            t.transfer(30, "a", "c")
            t.transfer(100, "a", "d")
    assert t.balance_of("a") == 100
    assert t.balance_of("b") == 0
    assert t.balance_of("c") == 0
    assert t.journal() == ()


def test_nested_atomic_joins_outer_scope():
    t = Treasury()
    t.credit("a", 100)
    with pytest.raises(RuntimeError):
        with t.atomic():
            t.transfer(10, "a", "b")
            with t.atomic():
                t.transfer(10, "a", "c")
            raise RuntimeError("boom")
    assert t.balance_of("a") == 100
    assert len(t.journal()) == 0


def test_atomic_commit_keeps_changes():
    t = Treasury()
    t.credit("a", 100)
    with t.atomic():
        t.transfer(10, "a", "b")
    assert t.balance_of("b") == 10
    assert [r.seq for r in t.journal()] == [1]


def test_dump_load():
    t = Treasury()
    t.credit("a", 100)
    t.transfer(25, "a", "b")
    t2 = Treasury.load(t.dump())
    assert t2.balance_of("a") == 75
    assert t2.balance_of("b") == 25
    assert t2.journal() == t.journal()
    rec = t2.transfer(1, "a", "b")
    assert rec is not None and rec.seq == 2
