import pytest
from prometheus_client import REGISTRY

from custodian.ledger import ExceedsPerTxLimit, Ledger


def _sample(metric: str, labels: dict = None) -> float:
    val = REGISTRY.get_sample_value(metric, labels or {})
    return 0.0 if val is None else float(val)


def test_success_counters_and_held_gauge():
    led = Ledger(100, 10, publisher=lambda env: None)
    deposits = _sample("ledger_deposits_total")
    deposited = _sample("ledger_deposited_amount_total")
    withdrawals = _sample("ledger_withdrawals_total")
    led.deposit("X", 8)
    led.withdraw("X", 3)
    assert _sample("ledger_deposits_total") - deposits == 1.0
    assert _sample("ledger_deposited_amount_total") - deposited == 8.0
    assert _sample("ledger_withdrawals_total") - withdrawals == 1.0
    assert _sample("ledger_held_value") == 5.0
    assert _sample("ledger_capacity") == 100.0


def test_rejections_labeled_by_operation_and_reason():
    led = Ledger(100, 10, publisher=lambda env: None)
    labels = {"operation": "withdraw", "reason": "exceeds_per_tx_limit"}
    before = _sample("ledger_rejections_total", labels)
    led.deposit("X", 50)
    with pytest.raises(ExceedsPerTxLimit):
        led.withdraw("X", 11)
    assert _sample("ledger_rejections_total", labels) - before == 1.0


def test_start_server_safe_tolerates_bound_port():
    import socket

    from custodian.metrics.core import start_server_safe

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("0.0.0.0", 0))
        s.listen(1)
        port = s.getsockname()[1]
        assert start_server_safe(port) is None
