"""Ledger error taxonomy.

Every failure of a ledger operation surfaces as one of these. Each class
carries a stable ``reason`` code used as the ``reason`` metric label and in
``OperationRejected`` events. None of them are retried by the ledger.
"""
from __future__ import annotations

from typing import Any, Optional


class LedgerError(Exception):
    reason = "ledger_error"

    def __init__(self, message: str = "", account: Any = None, amount: Optional[int] = None):
        super().__init__(message or self.reason)
        self.account = account
        self.amount = amount


class InvalidAmount(LedgerError):
    """Zero, negative or non-integer amount passed to deposit or withdraw."""
    reason = "invalid_amount"


class ExceedsCapacity(LedgerError):
    """A deposit would push custodied value above the ledger capacity."""
    reason = "exceeds_capacity"


class InsufficientBalance(LedgerError):
    """The account's recorded balance is zero or smaller than requested."""
    reason = "insufficient_balance"


class ExceedsPerTxLimit(LedgerError):
    reason = "exceeds_per_tx_limit"


class ReentrancyBlocked(LedgerError):
    """A withdraw was attempted while another withdraw was still in flight."""
    reason = "reentrancy_blocked"


class TransferFailed(LedgerError):
    """The outbound payment of a withdrawal did not go through."""
    reason = "transfer_failed"


class InvalidDepositPath(LedgerError):
    """Value was sent to the ledger outside of ``deposit``."""
    reason = "invalid_deposit_path"
