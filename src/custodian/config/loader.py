"""
Configuration loader for the custodian ledger.

What it does:
- Reads static settings from `config/config.yaml`.
- Applies environment overrides for the ledger limits and the metrics port:
  `CUSTODIAN_CAPACITY`, `CUSTODIAN_MAX_WITHDRAW_PER_OP`, `PROMETHEUS_PORT`.
- Validates the resulting configuration using Pydantic models.

Where it is used:
- `build_ledger` turns a `Settings` object into a ready `Ledger`.

Key outputs:
- `Settings` model with the ledger limits, event stream names and the
  Prometheus port.
"""

import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, field_validator

from ..custody.holding import AssetHolding
from ..ledger.vault import Ledger, Publisher


class LedgerConfig(BaseModel):
    """Immutable limits of a deployed ledger."""
    capacity: int
    max_withdraw_per_op: int

    @field_validator("capacity", "max_withdraw_per_op")
    @classmethod
    def non_negative(cls, v, info):
        if v < 0:
            raise ValueError(f"{info.field_name} must be non-negative")
        return v


class EventsConfig(BaseModel):
    stream: str = "custodian.events"
    dlq: str = "custodian.dlq"
    redis_url: str = "redis://localhost:6379/0"


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    ledger: LedgerConfig
    events: EventsConfig = EventsConfig()
    prometheus_port: int = 8000


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from None


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Load YAML config, apply env-var overrides, and return Settings."""
    with open(path, "r") as f:
        config: Dict[str, Any] = yaml.safe_load(f) or {}
    ledger = dict(config.get("ledger") or {})
    capacity = _env_int("CUSTODIAN_CAPACITY")
    if capacity is not None:
        ledger["capacity"] = capacity
    max_withdraw = _env_int("CUSTODIAN_MAX_WITHDRAW_PER_OP")
    if max_withdraw is not None:
        ledger["max_withdraw_per_op"] = max_withdraw
    port = _env_int("PROMETHEUS_PORT")
    return Settings(
        ledger=LedgerConfig(**ledger),
        events=EventsConfig(**(config.get("events") or {})),
        prometheus_port=port if port is not None else int(config.get("prometheus_port", 8000)),
    )


def apply_event_env(settings: Settings) -> None:
    """Export event stream settings to the env vars read by `custodian.events.bus`."""
    os.environ.setdefault("EVENTS_STREAM", settings.events.stream)
    os.environ.setdefault("EVENTS_DLQ", settings.events.dlq)
    os.environ.setdefault("REDIS_URL", settings.events.redis_url)


def build_ledger(
    settings: Settings,
    custody: Optional[AssetHolding] = None,
    publisher: Optional[Publisher] = None,
) -> Ledger:
    apply_event_env(settings)
    return Ledger(
        capacity=settings.ledger.capacity,
        max_withdraw_per_op=settings.ledger.max_withdraw_per_op,
        custody=custody,
        publisher=publisher,
    )
