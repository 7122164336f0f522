"""
Claim settler: stage three of the pipeline.

A user opens one discount claim per proof against a registered insurer.
Only that insurer can settle it, and only once:

    PENDING ──approve──▶ APPROVED
       └─────reject───▶ REJECTED

Critical invariants:
- Insurer registration is checked before anything else
- Proof expiry is NOT re-checked here, only revocation
- Settling a claim moves no value; the discount is realized off-system
"""

import threading
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from dietclaim.adapters.stores import InsurerRegistry
from dietclaim.core.component import PipelineComponent
from dietclaim.core.exceptions import (
    ClaimAlreadySubmitted,
    ClaimNotFound,
    InsurerNotRegistered,
    InvalidAmount,
    InvalidClaimId,
    InvalidFee,
    InvalidProof,
    InvalidUser,
    MaxClaimsExceeded,
    NotAuthorized,
    ProofInvalidated,
)
from dietclaim.core.models import Claim, ClaimStatus, is_int
from dietclaim.core.time import HeightClock
from dietclaim.ledger.journal import Journal, RecordType


@dataclass(frozen=True)
class SettlerConfig:
    admin:      str
    max_claims: int = 1000
    claim_fee:  int = 100

    def __post_init__(self) -> None:
        if not is_int(self.max_claims) or self.max_claims <= 0:
            raise InvalidClaimId("max_claims must be positive", {"max_claims": self.max_claims})
        if not is_int(self.claim_fee) or self.claim_fee < 0:
            raise InvalidFee(details={"fee": self.claim_fee})


class ClaimSettler(PipelineComponent):
    """
    Opens and settles discount claims.

    `proofs` is anything with get_proof(proof_id), normally the
    pipeline's ProofIssuer.
    """

    component_name = "settler"

    def __init__(
        self,
        config:       SettlerConfig,
        clock:        HeightClock,
        value_ledger,
        proofs,
        insurers:     Optional[InsurerRegistry] = None,
        journal:      Optional[Journal] = None,
        lock:         Optional[threading.RLock] = None,
    ) -> None:
        super().__init__(config, clock, value_ledger, journal, lock)
        self.proofs   = proofs
        self.insurers = insurers if insurers is not None else InsurerRegistry()
        self.next_claim_id: int = 0
        self._claims:         Dict[int, Claim]            = {}
        self._claim_by_proof: Dict[Tuple[str, int], int]  = {}

    # ── Admin ─────────────────────────────────────────────────

    def register_insurer(self, caller: str, insurer: str) -> bool:
        with self._lock:
            self._require_admin(caller)
            self._record(RecordType.INSURER_REGISTERED, caller, {"insurer": insurer})
            self.insurers.register(insurer)
            return True

    def is_insurer(self, principal: str) -> bool:
        return self.insurers.is_registered(principal)

    def set_max_claims(self, caller: str, max_claims: int) -> bool:
        return self._update_config(caller, max_claims=max_claims)

    def set_claim_fee(self, caller: str, fee: int) -> bool:
        return self._update_config(caller, claim_fee=fee)

    # ── Submission ────────────────────────────────────────────

    def submit_claim(
        self,
        caller:          str,
        proof_id:        int,
        insurer:         str,
        discount_amount: int,
    ) -> int:
        """
        Open a pending claim for the caller's own proof.

        Returns:
            The new claim_id.
        """
        with self._lock:
            if not self.insurers.is_registered(insurer):
                raise InsurerNotRegistered(details={"insurer": insurer})

            if not is_int(discount_amount) or discount_amount <= 0:
                raise InvalidAmount(details={"discount_amount": discount_amount})

            proof = self.proofs.get_proof(proof_id)
            if proof is None:
                raise InvalidProof(details={"proof_id": proof_id})
            if proof.user != caller:
                raise InvalidUser(details={"caller": caller, "proof_id": proof_id})
            if not proof.status:
                raise ProofInvalidated(details={"proof_id": proof_id})

            key = (caller, proof_id)
            if key in self._claim_by_proof:
                raise ClaimAlreadySubmitted(
                    details={"claim_id": self._claim_by_proof[key]}
                )

            if self.next_claim_id >= self.config.max_claims:
                raise MaxClaimsExceeded(details={"max_claims": self.config.max_claims})

            transfer = self._charge(caller, self.config.claim_fee)

            claim_id = self.next_claim_id
            claim = Claim(
                user=            caller,
                proof_id=        proof_id,
                insurer=         insurer,
                discount_amount= discount_amount,
                status=          ClaimStatus.PENDING,
                submitted_at=    self._height(),
            )
            self._commit(transfer, "submit_claim", RecordType.CLAIM_SUBMITTED, caller, {
                "claim_id": claim_id,
                "claim":    claim.to_dict(),
            })

            self._claims[claim_id] = claim
            self._claim_by_proof[key] = claim_id
            self.next_claim_id += 1
            return claim_id

    # ── Settlement ────────────────────────────────────────────

    def approve_claim(self, caller: str, claim_id: int) -> bool:
        return self._settle(caller, claim_id, ClaimStatus.APPROVED)

    def reject_claim(self, caller: str, claim_id: int) -> bool:
        return self._settle(caller, claim_id, ClaimStatus.REJECTED)

    def _settle(self, caller: str, claim_id: int, outcome: ClaimStatus) -> bool:
        with self._lock:
            claim = self._claims.get(claim_id)
            if claim is None:
                raise ClaimNotFound(details={"claim_id": claim_id})
            if caller != claim.insurer or not self.insurers.is_registered(caller):
                raise NotAuthorized(details={"caller": caller, "claim_id": claim_id})

            settled = replace(claim)
            settled.transition(outcome)

            self._record(RecordType.CLAIM_SETTLED, caller, {
                "claim_id": claim_id,
                "status":   outcome.value,
            })
            self._claims[claim_id] = settled
            return True

    # ── Reads ─────────────────────────────────────────────────

    def get_claim(self, claim_id: int) -> Optional[Claim]:
        """A copy of the stored claim; changing it changes nothing here."""
        claim = self._claims.get(claim_id)
        return replace(claim) if claim is not None else None

    def get_claim_id(self, user: str, proof_id: int) -> Optional[int]:
        return self._claim_by_proof.get((user, proof_id))

    def get_settlement_stats(self) -> dict:
        """Claim counts by status."""
        stats = {"total": len(self._claims), "by_status": {}}
        for claim in self._claims.values():
            status = claim.status.value
            stats["by_status"][status] = stats["by_status"].get(status, 0) + 1
        return stats
