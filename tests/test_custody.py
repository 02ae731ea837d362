import pytest

from custodian.custody.holding import AssetHolding, PaymentRejected


def test_accept_and_reverse():
    c = AssetHolding()
    c.accept("X", 7)
    assert c.held == 7
    c.reverse(7)
    assert c.held == 0
    with pytest.raises(ValueError):
        c.reverse(1)


def test_pay_without_hook_debits():
    c = AssetHolding(held=10)
    c.pay("X", 4)
    assert c.held == 6


def test_pay_more_than_held_rejected():
    c = AssetHolding(held=3)
    with pytest.raises(PaymentRejected):
        c.pay("X", 4)
    assert c.held == 3


def test_hook_sees_debited_holding_and_can_refuse():
    c = AssetHolding(held=10)
    seen = []

    def hook(account, amount):
        seen.append((account, amount, c.held))
        return False

    c.register_recipient("X", hook)
    with pytest.raises(PaymentRejected):
        c.pay("X", 4)
    assert seen == [("X", 4, 6)]
    assert c.held == 10


def test_hook_returning_none_accepts():
    c = AssetHolding(held=10)
    c.register_recipient("X", lambda account, amount: None)
    c.pay("X", 4)
    assert c.held == 6


def test_hook_interrupt_restores_holding():
    c = AssetHolding(held=10)

    def hook(account, amount):
        raise SystemExit(1)

    c.register_recipient("X", hook)
    with pytest.raises(SystemExit):
        c.pay("X", 4)
    assert c.held == 10
