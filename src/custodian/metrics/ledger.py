from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

_deposits_total: Optional[Counter] = None
_withdrawals_total: Optional[Counter] = None
_deposited_amount_total: Optional[Counter] = None
_withdrawn_amount_total: Optional[Counter] = None
_rejections_total: Optional[Counter] = None
_held_value: Optional[Gauge] = None
_capacity: Optional[Gauge] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _existing_collector(name: str):
    # prometheus_client strips the "_total" suffix from counter names
    try:
        names = getattr(REGISTRY, "_names_to_collectors", {})
        coll = names.get(name) or names.get(name + "_total")
        if coll is not None:
            return coll
        base = name[:-len("_total")] if name.endswith("_total") else name
        for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
            if getattr(coll, "_name", None) in (name, base):
                return coll
    except Exception:
        pass
    return None


def _safe_counter(name: str, doc: str, labelnames=()):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        # Already registered (module reloads, several ledgers in one process)
        coll = _existing_collector(name)
        return coll if coll is not None else _NoOp()


def _safe_gauge(name: str, doc: str, labelnames=()):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        coll = _existing_collector(name)
        return coll if coll is not None else _NoOp()


def get_deposits_total():
    global _deposits_total
    if _deposits_total is None:
        _deposits_total = _safe_counter("ledger_deposits_total", "Successful deposits")
    return _deposits_total


def get_withdrawals_total():
    global _withdrawals_total
    if _withdrawals_total is None:
        _withdrawals_total = _safe_counter("ledger_withdrawals_total", "Successful withdrawals")
    return _withdrawals_total


def get_deposited_amount_total():
    """Counter: asset units accepted through successful deposits."""
    global _deposited_amount_total
    if _deposited_amount_total is None:
        _deposited_amount_total = _safe_counter(
            "ledger_deposited_amount_total", "Asset units deposited"
        )
    return _deposited_amount_total


def get_withdrawn_amount_total():
    """Counter: asset units paid out through successful withdrawals."""
    global _withdrawn_amount_total
    if _withdrawn_amount_total is None:
        _withdrawn_amount_total = _safe_counter(
            "ledger_withdrawn_amount_total", "Asset units withdrawn"
        )
    return _withdrawn_amount_total


def get_rejections_total():
    """Counter: ledger_rejections_total{operation,reason}"""
    global _rejections_total
    if _rejections_total is None:
        _rejections_total = _safe_counter(
            "ledger_rejections_total", "Rejected ledger operations", ["operation", "reason"]
        )
    return _rejections_total


def get_held_value_gauge():
    global _held_value
    if _held_value is None:
        _held_value = _safe_gauge("ledger_held_value", "Asset units currently in custody")
    return _held_value


def get_capacity_gauge():
    global _capacity
    if _capacity is None:
        _capacity = _safe_gauge("ledger_capacity", "Configured custody capacity")
    return _capacity


def inc_rejection(operation: str, reason: str) -> None:
    try:
        get_rejections_total().labels(operation, reason).inc()
    except Exception:
        pass


def set_held_value(value: int) -> None:
    try:
        get_held_value_gauge().set(float(value))
    except Exception:
        # Metrics are optional in constrained environments
        pass
