from __future__ import annotations

from typing import Literal, Optional
from pydantic import BaseModel


# ---- Base + envelope ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int
    account: str
    amount: Optional[int] = None


class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: BaseEvent


# ---- Event types ----

class Deposited(BaseEvent):
    event_type: Literal["deposited"] = "deposited"
    amount: int
    balance_after: int
    held_after: int


class Withdrawn(BaseEvent):
    event_type: Literal["withdrawn"] = "withdrawn"
    amount: int
    balance_after: int
    held_after: int


class OperationRejected(BaseEvent):
    event_type: Literal["operation_rejected"] = "operation_rejected"
    operation: str
    reason: str
