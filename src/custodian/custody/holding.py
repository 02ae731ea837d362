"""Custody holding for the ledger.

What it does:
- Keeps the ground-truth quantity of the asset the ledger actually holds.
- Accepts value that arrives together with a deposit call, and reverses
  that receipt when the deposit is rolled back.
- Pays value out to a recipient. A recipient may register a receive hook
  that is invoked during the payment; the hook can reject the payment by
  returning False or raising, and it may call back into the ledger.

Where it is used:
- Owned by `custodian.ledger.vault.Ledger`, which reads `held` as its
  custodied value instead of summing its own balance map.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Hashable, Optional

RecipientHook = Callable[[Hashable, int], Optional[bool]]

log = logging.getLogger("custodian.custody")


class PaymentRejected(Exception):
    """Outbound payment could not be delivered; custody is left unchanged."""


class AssetHolding:
    def __init__(self, held: int = 0):
        self.held = int(held)
        self._recipients: Dict[Hashable, RecipientHook] = {}

    def register_recipient(self, account: Hashable, hook: RecipientHook) -> None:
        self._recipients[account] = hook

    def unregister_recipient(self, account: Hashable) -> None:
        self._recipients.pop(account, None)

    def accept(self, sender: Hashable, amount: int) -> None:
        self.held += amount
        log.debug(f"custody accepted {amount} from {sender}; held={self.held}")

    def reverse(self, amount: int) -> None:
        """Undo a prior ``accept`` of ``amount``."""
        if amount > self.held:
            raise ValueError(f"cannot reverse {amount}; only {self.held} held")
        self.held -= amount

    def pay(self, recipient: Hashable, amount: int) -> None:
        if amount > self.held:
            raise PaymentRejected(f"custody short: held={self.held} requested={amount}")
        self.held -= amount
        hook = self._recipients.get(recipient)
        if hook is None:
            return
        delivered = False
        try:
            delivered = hook(recipient, amount) is not False
        except Exception as e:
            raise PaymentRejected(f"recipient {recipient} raised: {e}") from e
        finally:
            # also covers KeyboardInterrupt and other BaseExceptions
            if not delivered:
                self.held += amount
        if not delivered:
            raise PaymentRejected(f"recipient {recipient} refused {amount}")
