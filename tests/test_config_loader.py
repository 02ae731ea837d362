import os

import pytest
from pydantic import ValidationError

from custodian.config.loader import build_ledger, load_settings


def _write(tmp_path, text: str):
    p = tmp_path / "config.yaml"
    p.write_text(text)
    return str(p)


def test_load_settings_from_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("CUSTODIAN_CAPACITY", raising=False)
    monkeypatch.delenv("CUSTODIAN_MAX_WITHDRAW_PER_OP", raising=False)
    monkeypatch.delenv("PROMETHEUS_PORT", raising=False)
    path = _write(tmp_path, "ledger:\n  capacity: 100\n  max_withdraw_per_op: 10\nprometheus_port: 9100\n")
    s = load_settings(path)
    assert s.ledger.capacity == 100
    assert s.ledger.max_withdraw_per_op == 10
    assert s.prometheus_port == 9100
    assert s.events.stream == "custodian.events"


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("CUSTODIAN_CAPACITY", "500")
    monkeypatch.setenv("CUSTODIAN_MAX_WITHDRAW_PER_OP", "25")
    monkeypatch.setenv("PROMETHEUS_PORT", "9200")
    path = _write(tmp_path, "ledger:\n  capacity: 100\n  max_withdraw_per_op: 10\n")
    s = load_settings(path)
    assert (s.ledger.capacity, s.ledger.max_withdraw_per_op, s.prometheus_port) == (500, 25, 9200)


def test_negative_limits_rejected(tmp_path, monkeypatch):
    monkeypatch.delenv("CUSTODIAN_CAPACITY", raising=False)
    monkeypatch.delenv("CUSTODIAN_MAX_WITHDRAW_PER_OP", raising=False)
    path = _write(tmp_path, "ledger:\n  capacity: -1\n  max_withdraw_per_op: 10\n")
    with pytest.raises(ValidationError):
        load_settings(path)


def test_non_integer_env_override_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("CUSTODIAN_CAPACITY", "lots")
    path = _write(tmp_path, "ledger:\n  capacity: 1\n  max_withdraw_per_op: 1\n")
    with pytest.raises(ValueError):
        load_settings(path)


def test_build_ledger_uses_limits(tmp_path, monkeypatch):
    monkeypatch.delenv("CUSTODIAN_CAPACITY", raising=False)
    monkeypatch.delenv("CUSTODIAN_MAX_WITHDRAW_PER_OP", raising=False)
    for name in ("EVENTS_STREAM", "EVENTS_DLQ", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)
    path = _write(tmp_path, "ledger:\n  capacity: 30\n  max_withdraw_per_op: 3\nevents:\n  stream: test.events\n")
    led = build_ledger(load_settings(path), publisher=lambda env: None)
    assert (led.capacity, led.max_withdraw_per_op) == (30, 3)
    assert os.environ["EVENTS_STREAM"] == "test.events"
