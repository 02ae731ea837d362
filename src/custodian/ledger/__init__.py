"""Ledger package.

Public API:
- Ledger: custodial balances under a capacity, capped withdrawals, journal export.
- LedgerError and its subclasses: the failures a ledger operation can raise.
"""

from .vault import Ledger  # re-export
from .errors import (
    ExceedsCapacity,
    ExceedsPerTxLimit,
    InsufficientBalance,
    InvalidAmount,
    InvalidDepositPath,
    LedgerError,
    ReentrancyBlocked,
    TransferFailed,
)
from .guard import GuardState, ReentrancyGuard
