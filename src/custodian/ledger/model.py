from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Literal

Account = Hashable
EntryKind = Literal["deposit", "withdraw"]


@dataclass
class JournalEntry:
    sequence: int
    ts: int
    account: str
    kind: EntryKind
    amount: int
    balance_after: int
    held_after: int
