from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from ..custody.holding import AssetHolding, PaymentRejected
from ..events.bus import publish as publish_event
from ..events.schema import BaseEvent, Deposited, EventEnvelope, OperationRejected, Withdrawn
from ..metrics.core import publish_ledger_gauges
from ..metrics.ledger import (
    get_deposits_total,
    get_deposited_amount_total,
    get_withdrawals_total,
    get_withdrawn_amount_total,
    inc_rejection,
    set_held_value,
)
from .errors import (
    ExceedsCapacity,
    ExceedsPerTxLimit,
    InsufficientBalance,
    InvalidAmount,
    InvalidDepositPath,
    LedgerError,
    TransferFailed,
)
from .guard import ReentrancyGuard
from .model import Account, EntryKind, JournalEntry

log = logging.getLogger("custodian.ledger")

Publisher = Callable[[EventEnvelope], None]
Effect = Callable[[], None]


@dataclass
class _Staged:
    """Undo record and held-back side effects of an in-flight withdraw."""
    deposit_count: int
    withdraw_count: int
    journal_len: int
    held: int
    # prior value of every balance touched; None means the key was absent
    prior_balances: Dict[Account, Optional[int]] = field(default_factory=dict)
    effects: List[Effect] = field(default_factory=list)


def _as_uint(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def _now_ms() -> int:
    return int(time.time() * 1000)


class Ledger:
    """Custodial ledger for a single asset.

    Accepts deposits up to ``capacity`` of custodied value and pays
    depositors back up to their own balance, at most ``max_withdraw_per_op``
    per call. ``total_held()`` is read from the custody holding, not summed
    from ``balances``, so the sum of balances never exceeds it.

    Every mutating call runs under one re-entrant lock; ``withdraw`` is also
    non-reentrant through ``ReentrancyGuard``. Failed operations restore all
    state they touched before raising. While a withdraw is paying out, events,
    metric increments and log lines are held back and only released once the
    payment has gone through.
    """

    def __init__(
        self,
        capacity: int,
        max_withdraw_per_op: int,
        custody: Optional[AssetHolding] = None,
        publisher: Optional[Publisher] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._capacity = _as_uint("capacity", capacity)
        self._max_withdraw_per_op = _as_uint("max_withdraw_per_op", max_withdraw_per_op)
        self.custody = custody if custody is not None else AssetHolding()
        self.balances: Dict[Account, int] = {}
        self.journal: List[JournalEntry] = []
        self._deposit_count = 0
        self._withdraw_count = 0
        self._event_seq = 0
        self._staged: Optional[_Staged] = None
        self._guard = ReentrancyGuard()
        self._lock = threading.RLock()
        self._publisher = publisher
        self._clock = clock or _now_ms
        # Metrics
        self._deposits_total = get_deposits_total()
        self._withdrawals_total = get_withdrawals_total()
        self._deposited_amount = get_deposited_amount_total()
        self._withdrawn_amount = get_withdrawn_amount_total()
        publish_ledger_gauges(self._capacity, self.custody.held)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def max_withdraw_per_op(self) -> int:
        return self._max_withdraw_per_op

    @property
    def deposit_count(self) -> int:
        return self._deposit_count

    @property
    def withdraw_count(self) -> int:
        return self._withdraw_count

    @property
    def guard(self) -> ReentrancyGuard:
        return self._guard

    # ---- mutating operations ----

    def deposit(self, caller: Account, amount: int) -> None:
        """Take ``amount`` into custody and credit it to ``caller``.

        The capacity check runs against the post-receipt holding; on failure
        the receipt is reversed before ``ExceedsCapacity`` is raised.
        """
        with self._lock:
            try:
                self._check_amount(amount)
                self.custody.accept(caller, amount)
                if self.custody.held > self._capacity:
                    held = self.custody.held
                    self.custody.reverse(amount)
                    raise ExceedsCapacity(
                        f"deposit of {amount} would hold {held} > capacity {self._capacity}",
                        account=caller,
                        amount=amount,
                    )
            except LedgerError as e:
                self._reject("deposit", caller, amount, e)
                raise
            self._set_balance(caller, self.balances.get(caller, 0) + amount)
            self._deposit_count += 1
            self._effect(self._deposits_total.inc)
            self._effect(lambda: self._deposited_amount.inc(amount))
            self._record("deposit", caller, amount)

    def withdraw(self, caller: Account, amount: int) -> None:
        """Debit ``caller`` by ``amount`` and pay it out of custody.

        Checks run in order: amount, non-zero balance, sufficient balance,
        per-operation ceiling. A failed payment rolls back the debit, the
        counter and anything the recipient did to the ledger meanwhile.
        """
        with self._lock:
            try:
                with self._guard:
                    self._withdraw(caller, amount)
            except LedgerError as e:
                self._reject("withdraw", caller, amount, e)
                raise

    def _withdraw(self, caller: Account, amount: int) -> None:
        self._check_amount(amount)
        balance = self.balances.get(caller, 0)
        if balance == 0:
            raise InsufficientBalance(f"account {caller} has no balance", account=caller, amount=amount)
        if balance < amount:
            raise InsufficientBalance(
                f"account {caller} balance {balance} < {amount}", account=caller, amount=amount
            )
        if amount > self._max_withdraw_per_op:
            raise ExceedsPerTxLimit(
                f"withdrawal of {amount} exceeds per-operation limit {self._max_withdraw_per_op}",
                account=caller,
                amount=amount,
            )
        staged = _Staged(
            deposit_count=self._deposit_count,
            withdraw_count=self._withdraw_count,
            journal_len=len(self.journal),
            held=self.custody.held,
        )
        self._staged = staged
        try:
            self._set_balance(caller, balance - amount)
            self._withdraw_count += 1
            self.custody.pay(caller, amount)
        except PaymentRejected as e:
            self._rollback(staged)
            raise TransferFailed(str(e), account=caller, amount=amount) from e
        except BaseException:
            self._rollback(staged)
            raise
        finally:
            self._staged = None
        # Release what the recipient did to the ledger during the payment
        for effect in staged.effects:
            effect()
        self._withdrawals_total.inc()
        self._withdrawn_amount.inc(amount)
        self._record("withdraw", caller, amount)

    def receive(self, sender: Account, amount: int) -> None:
        """Entry point for value sent outside ``deposit``; always rejected."""
        with self._lock:
            err = InvalidDepositPath(
                "value must be sent through deposit", account=sender, amount=amount
            )
            self._reject("receive", sender, amount, err)
            raise err

    # ---- queries ----

    def balance_of(self, account: Account) -> int:
        balance = self.balances.get(account, 0)
        if balance == 0:
            raise InsufficientBalance(f"account {account} has no balance", account=account)
        return balance

    def total_held(self) -> int:
        return self.custody.held

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "capacity": self._capacity,
                "max_withdraw_per_op": self._max_withdraw_per_op,
                "held_value": self.custody.held,
                "total_balances": sum(self.balances.values()),
                "deposit_count": self._deposit_count,
                "withdraw_count": self._withdraw_count,
                "accounts": sum(1 for v in self.balances.values() if v > 0),
            }

    def write_parquet(self, base_dir: str = "data") -> str:
        os.makedirs(base_dir, exist_ok=True)
        columns = ["sequence", "ts", "account", "kind", "amount", "balance_after", "held_after"]
        journal_df = pd.DataFrame([e.__dict__ for e in self.journal], columns=columns)
        path = os.path.join(base_dir, "journal.parquet")
        journal_df.to_parquet(path)
        return path

    # ---- internals ----

    @staticmethod
    def _check_amount(amount: Any) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")

    def _set_balance(self, account: Account, value: int) -> None:
        staged = self._staged
        if staged is not None and account not in staged.prior_balances:
            staged.prior_balances[account] = self.balances.get(account)
        self.balances[account] = value

    def _effect(self, fn: Effect) -> None:
        if self._staged is not None:
            self._staged.effects.append(fn)
        else:
            fn()

    def _rollback(self, staged: _Staged) -> None:
        for account, prior in staged.prior_balances.items():
            if prior is None:
                self.balances.pop(account, None)
            else:
                self.balances[account] = prior
        self._deposit_count = staged.deposit_count
        self._withdraw_count = staged.withdraw_count
        del self.journal[staged.journal_len:]
        self.custody.held = staged.held

    def _record(self, kind: EntryKind, account: Account, amount: int) -> None:
        ts = self._clock()
        held = self.custody.held
        balance = self.balances.get(account, 0)
        self.journal.append(
            JournalEntry(
                sequence=len(self.journal) + 1,
                ts=ts,
                account=str(account),
                kind=kind,
                amount=amount,
                balance_after=balance,
                held_after=held,
            )
        )
        event_cls = Deposited if kind == "deposit" else Withdrawn
        evt = event_cls(ts=ts, account=str(account), amount=amount, balance_after=balance, held_after=held)

        def _announce() -> None:
            set_held_value(held)
            log.info(f"{kind} account={account} amount={amount} balance={balance} held={held}")
            self._emit(kind, evt)

        self._effect(_announce)

    def _reject(self, operation: str, account: Account, amount: Any, err: LedgerError) -> None:
        safe_amount = amount if isinstance(amount, int) and not isinstance(amount, bool) else None
        evt = OperationRejected(
            ts=self._clock(),
            account=str(account),
            amount=safe_amount,
            operation=operation,
            reason=err.reason,
        )

        def _announce() -> None:
            log.warning(f"{operation} rejected account={account} amount={amount!r} reason={err.reason}: {err}")
            inc_rejection(operation, err.reason)
            self._emit(operation, evt)

        self._effect(_announce)

    def _emit(self, operation: str, evt: BaseEvent) -> None:
        self._event_seq += 1
        env = EventEnvelope(
            correlation_id=f"{operation}:{evt.account}",
            sequence=self._event_seq,
            event=evt,
        )
        publisher = self._publisher or publish_event
        try:
            publisher(env)
        except Exception:
            # Event delivery is best-effort; ledger state is already settled
            log.exception(f"failed to publish {evt.event_type} event")
