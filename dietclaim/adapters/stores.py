"""
In-memory collaborators consumed by the pipeline.

The pipeline only ever calls the methods below, so any object with the
same methods can stand in (a database-backed profile store, a chain
client for transfers, ...):

    plans.get_plan(plan_id)              -> Plan | None
    profiles.get_subscribed_plan(user)   -> int | None
    logs.get_log(user, block)            -> DailyLog | None
    insurers.is_registered(principal)    -> bool
    insurers.register(principal)
    value_ledger.transfer(amount, sender, recipient)   raises TransferFailed
"""

import threading
from typing import Dict, Iterable, List, Optional, Set, Tuple

from dietclaim.core.exceptions import TransferFailed
from dietclaim.core.models import DailyLog, Plan, Transfer, is_int


class InMemoryPlanRegistry:
    """Diet plans by integer id."""

    def __init__(self, plans: Optional[Dict[int, Plan]] = None) -> None:
        self._plans: Dict[int, Plan] = dict(plans or {})

    def add_plan(self, plan_id: int, plan: Plan) -> None:
        self._plans[plan_id] = plan

    def get_plan(self, plan_id: int) -> Optional[Plan]:
        return self._plans.get(plan_id)


class InMemoryProfileStore:
    """Which plan each user is subscribed to."""

    def __init__(self, subscriptions: Optional[Dict[str, int]] = None) -> None:
        self._subscriptions: Dict[str, int] = dict(subscriptions or {})

    def subscribe(self, user: str, plan_id: int) -> None:
        self._subscriptions[user] = plan_id

    def get_subscribed_plan(self, user: str) -> Optional[int]:
        return self._subscriptions.get(user)


class InMemoryLogStore:
    """Daily logs keyed by (user, block)."""

    def __init__(self) -> None:
        self._logs: Dict[Tuple[str, int], DailyLog] = {}

    def add_log(self, user: str, block: int, log: DailyLog) -> None:
        self._logs[(user, block)] = log

    def add_logs(self, user: str, blocks: Iterable[int], log: DailyLog) -> None:
        """Store the same log for every block in `blocks`."""
        for block in blocks:
            self._logs[(user, block)] = log

    def get_log(self, user: str, block: int) -> Optional[DailyLog]:
        return self._logs.get((user, block))


class InsurerRegistry:
    """
    Registered insurer principals. No removal.
    Admin gating is the settler's job, not the registry's.
    """

    def __init__(self, insurers: Optional[Iterable[str]] = None) -> None:
        self._insurers: Set[str] = set(insurers or ())

    def register(self, principal: str) -> None:
        self._insurers.add(principal)

    def is_registered(self, principal: str) -> bool:
        return principal in self._insurers


class InMemoryValueLedger:
    """
    Balance book with an atomic debit-sender / credit-recipient transfer.

    With allow_overdraft=True balances may go negative, which is handy
    when only the transfer record matters.
    """

    def __init__(
        self,
        balances:        Optional[Dict[str, int]] = None,
        allow_overdraft: bool = False,
    ) -> None:
        self._balances:       Dict[str, int] = dict(balances or {})
        self.allow_overdraft: bool           = allow_overdraft
        self.transfers:       List[Transfer] = []
        self._lock = threading.Lock()

    def credit(self, account: str, amount: int) -> None:
        with self._lock:
            self._balances[account] = self._balances.get(account, 0) + amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def transfer(self, amount: int, sender: str, recipient: str) -> Transfer:
        """
        Move `amount` from sender to recipient, or raise TransferFailed
        with balances untouched.
        """
        if not is_int(amount) or amount < 0:
            raise TransferFailed(details={"amount": amount})

        with self._lock:
            available = self._balances.get(sender, 0)
            if available < amount and not self.allow_overdraft:
                raise TransferFailed(
                    "Insufficient balance for fee transfer",
                    {"sender": sender, "amount": amount, "available": available},
                )
            self._balances[sender] = available - amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount

            record = Transfer(amount=amount, sender=sender, recipient=recipient)
            self.transfers.append(record)
            return record

    def reverse(self, transfer: Transfer) -> None:
        """
        Undo a transfer this ledger made: balances are restored and its
        record is dropped. Raises ValueError for an unknown transfer.
        """
        with self._lock:
            for i in range(len(self.transfers) - 1, -1, -1):
                if self.transfers[i] == transfer:
                    del self.transfers[i]
                    break
            else:
                raise ValueError(f"No such transfer: {transfer}")
            self._balances[transfer.sender] = self._balances.get(transfer.sender, 0) + transfer.amount
            self._balances[transfer.recipient] = self._balances.get(transfer.recipient, 0) - transfer.amount
