"""Core metrics helpers for the custodian ledger.

Starts the Prometheus HTTP exporter while tolerating bind failures, so a
ledger host never fails to start because the metrics port is taken.
"""

import logging
from typing import Optional

from prometheus_client import start_http_server

from .ledger import get_capacity_gauge, set_held_value


def start_server_safe(port: int) -> Optional[int]:
    """Start Prometheus metrics server; return port or None if failed.

    Logs a warning and continues if the port cannot be bound.
    """
    try:
        start_http_server(port)
        logging.info(f"Prometheus metrics server started on :{port}")
        return port
    except OSError as e:
        logging.warning(f"Failed to start Prometheus server on :{port}: {e}")
        return None


def publish_ledger_gauges(capacity: int, held_value: int) -> None:
    """Seed the capacity and held-value gauges for a freshly built ledger."""
    try:
        get_capacity_gauge().set(float(capacity))
    except Exception:
        pass
    set_held_value(held_value)
