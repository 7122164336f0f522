"""
Proof issuer: stage two of the pipeline.

Turns a passing Verification into an expiring, revocable Proof. At most
one proof is ever minted per (user, period_start, period_end).

PROTOCOL INVARIANT: check order.
Order: Already generated → Verification → Eligibility → Hash → Capacity → Fee

Eligibility is `verification.status and verification.score >= proof_fee`.
The bound is the proof fee itself, not the compliance threshold. Changing
proof_fee later has no effect on proofs already issued.
"""

import threading
from dataclasses import dataclass, replace
from typing import Dict, Optional

from dietclaim.core.component import PipelineComponent
from dietclaim.core.exceptions import (
    InsufficientScore,
    InvalidExpiry,
    InvalidFee,
    InvalidProofHash,
    InvalidProofId,
    InvalidVerification,
    MaxProofsExceeded,
    NotAuthorized,
    ProofAlreadyGenerated,
    ProofExpired,
)
from dietclaim.core.models import PeriodKey, Proof, is_int
from dietclaim.core.time import HeightClock
from dietclaim.ledger.journal import Journal, RecordType


@dataclass(frozen=True)
class IssuerConfig:
    admin:        str
    max_proofs:   int = 1000
    proof_fee:    int = 200
    proof_expiry: int = 52560

    def __post_init__(self) -> None:
        if not is_int(self.max_proofs) or self.max_proofs <= 0:
            raise InvalidProofId("max_proofs must be positive", {"max_proofs": self.max_proofs})
        if not is_int(self.proof_fee) or self.proof_fee < 0:
            raise InvalidFee(details={"fee": self.proof_fee})
        if not is_int(self.proof_expiry) or self.proof_expiry <= 0:
            raise InvalidExpiry(details={"proof_expiry": self.proof_expiry})


class ProofIssuer(PipelineComponent):
    """
    Mints proofs from the verifier's records.

    `verifications` is anything with get_verification(user, start, end),
    normally the pipeline's ComplianceVerifier.
    """

    component_name = "issuer"

    def __init__(
        self,
        config:        IssuerConfig,
        clock:         HeightClock,
        value_ledger,
        verifications,
        journal:       Optional[Journal] = None,
        lock:          Optional[threading.RLock] = None,
    ) -> None:
        super().__init__(config, clock, value_ledger, journal, lock)
        self.verifications = verifications
        self.next_proof_id: int = 0
        self._proofs:          Dict[int, Proof]      = {}
        self._proof_by_period: Dict[PeriodKey, int]  = {}

    # ── Admin setters ─────────────────────────────────────────

    def set_max_proofs(self, caller: str, max_proofs: int) -> bool:
        return self._update_config(caller, max_proofs=max_proofs)

    def set_proof_fee(self, caller: str, fee: int) -> bool:
        return self._update_config(caller, proof_fee=fee)

    def set_proof_expiry(self, caller: str, blocks: int) -> bool:
        return self._update_config(caller, proof_expiry=blocks)

    # ── Issuance ──────────────────────────────────────────────

    def generate_proof(
        self,
        caller:       str,
        period_start: int,
        period_end:   int,
        plan_id:      int,
        proof_hash:   bytes,
    ) -> int:
        """
        Mint a proof for the caller's verified period.

        Returns:
            The new proof_id.
        """
        with self._lock:
            key = (caller, period_start, period_end)
            if key in self._proof_by_period:
                raise ProofAlreadyGenerated(
                    details={"proof_id": self._proof_by_period[key]}
                )

            verification = self.verifications.get_verification(caller, period_start, period_end)
            if verification is None:
                raise InvalidVerification(
                    details={"user": caller, "start": period_start, "end": period_end}
                )

            if not verification.status or verification.score < self.config.proof_fee:
                raise InsufficientScore(details={
                    "score":     verification.score,
                    "status":    verification.status,
                    "proof_fee": self.config.proof_fee,
                })

            if not proof_hash:
                raise InvalidProofHash()

            if self.next_proof_id >= self.config.max_proofs:
                raise MaxProofsExceeded(details={"max_proofs": self.config.max_proofs})

            transfer = self._charge(caller, self.config.proof_fee)

            height   = self._height()
            proof_id = self.next_proof_id
            proof = Proof(
                user=         caller,
                period_start= period_start,
                period_end=   period_end,
                score=        verification.score,
                proof_hash=   bytes(proof_hash),
                issued_at=    height,
                expiry=       height + self.config.proof_expiry,
                status=       True,
                plan_id=      plan_id,
            )
            self._commit(transfer, "generate_proof", RecordType.PROOF_ISSUED, caller, {
                "proof_id": proof_id,
                "proof":    proof.to_dict(),
            })

            self._proofs[proof_id] = proof
            self._proof_by_period[key] = proof_id
            self.next_proof_id += 1
            return proof_id

    def verify_proof(self, proof_id: int) -> bool:
        """
        Current status of a live proof.
        Raises InvalidProofId if unknown, ProofExpired once expiry <= height,
        even for a revoked proof.
        """
        with self._lock:
            proof = self._get_or_raise(proof_id)
            if proof.is_expired(self._height()):
                raise ProofExpired(details={"proof_id": proof_id, "expiry": proof.expiry})
            return proof.status

    def revoke_proof(self, caller: str, proof_id: int) -> bool:
        """Admin or owner only. Idempotent; there is no un-revoke."""
        with self._lock:
            proof = self._get_or_raise(proof_id)
            if caller != self.config.admin and caller != proof.user:
                raise NotAuthorized(details={"caller": caller, "proof_id": proof_id})
            self._record(RecordType.PROOF_REVOKED, caller, {
                "proof_id":   proof_id,
                "was_active": proof.status,
            })
            proof.revoke()
            return True

    # ── Reads ─────────────────────────────────────────────────

    def get_proof(self, proof_id: int) -> Optional[Proof]:
        """A copy of the stored proof; changing it changes nothing here."""
        proof = self._proofs.get(proof_id)
        return replace(proof) if proof is not None else None

    def get_proof_id(self, user: str, period_start: int, period_end: int) -> Optional[int]:
        return self._proof_by_period.get((user, period_start, period_end))

    def _get_or_raise(self, proof_id: int) -> Proof:
        proof = self._proofs.get(proof_id)
        if proof is None:
            raise InvalidProofId(details={"proof_id": proof_id})
        return proof
