import json

import pytest
from pydantic import ValidationError

from custodian.events.bus import to_line
from custodian.events.schema import Deposited, EventEnvelope, OperationRejected


def test_envelope_line_is_compact_json():
    env = EventEnvelope(
        correlation_id="deposit:X",
        sequence=3,
        event=Deposited(ts=1, account="X", amount=2, balance_after=2, held_after=2),
    )
    line = to_line(env)
    assert " " not in line
    data = json.loads(line)
    assert data["schema_version"] == "v1"
    assert data["sequence"] == 3
    assert data["event"]["event_type"] == "deposited"
    assert data["event"]["amount"] == 2


def test_rejection_allows_missing_amount():
    evt = OperationRejected(ts=1, account="X", operation="deposit", reason="invalid_amount")
    assert evt.amount is None


def test_deposited_requires_amount():
    with pytest.raises(ValidationError):
        Deposited(ts=1, account="X", balance_after=1, held_after=1)
