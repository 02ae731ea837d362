from __future__ import annotations

from ..metrics.ledger import _safe_counter

_events_total = None
_events_dlq_total = None


def get_events_total():
    global _events_total
    if _events_total is None:
        _events_total = _safe_counter("ledger_events_total", "Ledger events published", ["type"])
    return _events_total


def get_events_dlq_total():
    global _events_dlq_total
    if _events_dlq_total is None:
        _events_dlq_total = _safe_counter(
            "ledger_events_dlq_total", "Ledger events diverted to the dead-letter stream", ["type"]
        )
    return _events_dlq_total
