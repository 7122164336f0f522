"""
Shared plumbing for the three pipeline stages.

Every stage owns:
    config        — a frozen dataclass; setters swap in a new instance
    clock         — HeightClock (or anything with current_height())
    value_ledger  — transfer(amount, sender, recipient)
    journal       — optional signed audit Journal
    lock          — shared by all stages of one pipeline

Public operations run under the lock and go:

    validate → check journal → charge fee → journal → write state

The fee entry and the operation entry are appended as one batch. If that
append fails the fee is reversed and JournalWriteError propagates with
no state written. Nothing after the journal append may raise except
InvariantViolation.
"""

import threading
from dataclasses import asdict, replace
from typing import Any, Dict, Optional

from dietclaim.core.exceptions import JournalWriteError, NotAuthorized, TransferFailed
from dietclaim.core.models import Transfer
from dietclaim.core.time import HeightClock
from dietclaim.ledger.journal import Journal, RecordType


class PipelineComponent:
    """Base class for ComplianceVerifier, ProofIssuer and ClaimSettler."""

    component_name = "component"

    def __init__(
        self,
        config,
        clock:        HeightClock,
        value_ledger,
        journal:      Optional[Journal] = None,
        lock:         Optional[threading.RLock] = None,
    ) -> None:
        self.config       = config
        self.clock        = clock
        self.value_ledger = value_ledger
        self.journal      = journal
        self._lock        = lock or threading.RLock()

    # ── Configuration ─────────────────────────────────────────

    @property
    def admin(self) -> str:
        return self.config.admin

    def _require_admin(self, caller: str) -> None:
        if caller != self.config.admin:
            raise NotAuthorized(details={"caller": caller})

    def _update_config(self, caller: str, **changes: Any) -> bool:
        """
        Admin-gated config swap. The config dataclass validates the new
        values; the swap happens only after the change is journaled.
        """
        with self._lock:
            self._require_admin(caller)
            config = replace(self.config, **changes)
            self._record(RecordType.CONFIG_CHANGED, caller, {
                "changes": changes,
                "config":  asdict(config),
            })
            self.config = config
            return True

    def set_admin(self, caller: str, new_admin: str) -> bool:
        return self._update_config(caller, admin=new_admin)

    # ── Side effects ──────────────────────────────────────────

    def _height(self) -> int:
        return self.clock.current_height()

    def _charge(self, caller: str, amount: int) -> Transfer:
        """
        Exactly one fee transfer per successful call. Raises TransferFailed
        or JournalWriteError before any value has moved.
        """
        if self.journal is not None:
            self.journal.check_writable()
        result = self.value_ledger.transfer(amount, caller, self.config.admin)
        # Ledgers that report success as a bool instead of raising
        if result is False:
            raise TransferFailed(details={"sender": caller, "amount": amount})
        if isinstance(result, Transfer):
            return result
        return Transfer(amount=amount, sender=caller, recipient=self.config.admin)

    def _record(self, record_type: str, actor: str, payload: Dict[str, Any]) -> None:
        if self.journal is not None:
            self.journal.emit(
                record_type= record_type,
                component=   self.component_name,
                actor=       actor,
                height=      self._height(),
                payload=     payload,
            )

    def _record_fee(self, transfer: Transfer, operation: str) -> None:
        payload = transfer.to_dict()
        payload["operation"] = operation
        self._record(RecordType.FEE_TRANSFER, transfer.sender, payload)

    def _commit(
        self,
        transfer:    Transfer,
        operation:   str,
        record_type: str,
        actor:       str,
        payload:     Dict[str, Any],
    ) -> None:
        """
        Journal a charged operation: its fee entry, then its own entry,
        in one append. On a failed append the fee goes back to the caller.
        """
        if self.journal is None:
            return
        try:
            with self.journal.batch():
                self._record_fee(transfer, operation)
                self._record(record_type, actor, payload)
        except JournalWriteError:
            self._refund(transfer)
            raise

    def _refund(self, transfer: Transfer) -> None:
        reverse = getattr(self.value_ledger, "reverse", None)
        if reverse is not None:
            reverse(transfer)
        else:
            self.value_ledger.transfer(transfer.amount, transfer.recipient, transfer.sender)
